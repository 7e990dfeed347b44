from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, selectinload

from .database import read_scope, transaction
from .errors import InvalidArgument, NotFound
from .models import CartItem, Order, Product
from .reservations import validate_owner
from .utils.logging import logger


def create_product(
    db: Session,
    name: str,
    price,
    description: Optional[str] = None,
    stock: int = 0,
) -> Product:
    name = (name or "").strip()
    if not name:
        raise InvalidArgument("name is required")
    try:
        price = Decimal(str(price))
    except ArithmeticError:
        raise InvalidArgument("price must be a number")
    if not price.is_finite() or price < 0:
        raise InvalidArgument("price must be >= 0")
    if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
        raise InvalidArgument("stock must be a non-negative integer")

    db_product = Product(name=name, description=description, price=price, stock=stock)
    with transaction(db):
        db.add(db_product)
        db.flush()
        db.refresh(db_product)
        # detached before commit so the returned row is not expired and reloaded
        db.expunge(db_product)
    return db_product


def get_product(db: Session, product_id: int) -> Product:
    with read_scope(db):
        product = db.query(Product).filter(Product.id == product_id).populate_existing().first()
    if product is None:
        raise NotFound(f"product {product_id} not found")
    return product


def list_products(db: Session) -> List[Product]:
    with read_scope(db):
        return db.query(Product).order_by(Product.id).populate_existing().all()


def set_stock(db: Session, product_id: int, new_stock: int) -> None:
    """Overwrite a product's available stock (restocking).

    Reserved quantities already sitting in carts are not touched.
    """
    if isinstance(new_stock, bool) or not isinstance(new_stock, int) or new_stock < 0:
        raise InvalidArgument("stock cannot be negative")

    with transaction(db):
        updated = (
            db.query(Product)
            .filter(Product.id == product_id)
            .update({Product.stock: new_stock}, synchronize_session=False)
        )
        if updated == 0:
            raise NotFound(f"product {product_id} not found")

    logger.info("stock_set", product_id=product_id, stock=new_stock)


def list_cart(db: Session, owner: str) -> Tuple[List[dict], Decimal]:
    """Return the owner's cart lines priced at the current catalogue price."""
    validate_owner(owner)

    with read_scope(db):
        rows = (
            db.query(CartItem.product_id, CartItem.quantity, Product.price)
            .join(Product, Product.id == CartItem.product_id)
            .filter(CartItem.owner_id == owner)
            .order_by(CartItem.product_id)
            .all()
        )
    items = [
        {"product_id": product_id, "quantity": quantity, "price": Decimal(str(price))}
        for product_id, quantity, price in rows
    ]
    total = sum((item["price"] * item["quantity"] for item in items), Decimal("0"))
    return items, total


def get_order(db: Session, order_id: int) -> Order:
    with read_scope(db):
        order = (
            db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.id == order_id)
            .first()
        )
    if order is None:
        raise NotFound(f"order {order_id} not found")
    return order


def list_orders(db: Session, owner: str) -> List[Order]:
    validate_owner(owner)
    with read_scope(db):
        return (
            db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.owner_id == owner)
            .order_by(Order.id.desc())
            .all()
        )
