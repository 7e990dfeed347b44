from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Query, Session

from .database import transaction
from .errors import EmptyCart
from .locks import KeyedLockRegistry, owner_locks
from .models import Cart, CartItem, Order, OrderItem, Product
from .reservations import validate_owner
from .utils.logging import logger


def locked_cart_lines_query(db: Session, owner: str) -> Query:
    # ascending product id is the lock order every multi-row transaction follows
    return (
        db.query(CartItem.product_id, CartItem.quantity, Product.price)
        .join(Product, Product.id == CartItem.product_id)
        .filter(CartItem.owner_id == owner)
        .order_by(Product.id)
        .with_for_update()
    )


def _locked_cart_lines(db: Session, owner: str) -> list[tuple[int, int, Decimal]]:
    rows = locked_cart_lines_query(db, owner).all()
    return [(product_id, quantity, Decimal(str(price))) for product_id, quantity, price in rows]


def checkout(db: Session, owner: str, *, locks: KeyedLockRegistry = owner_locks) -> Order:
    """Turn the owner's reservations into an order and clear the cart.

    Stock is left alone: it was decremented when each line was reserved.
    Each order line keeps the price read here, so later catalogue price
    changes never alter a placed order. Raises ``EmptyCart`` when the owner
    has nothing reserved. On any failure the order is not written and the
    cart keeps its reservations, so the call can simply be retried.
    """
    validate_owner(owner)

    with locks.acquire(owner), transaction(db):
        lines = _locked_cart_lines(db, owner)
        if not lines:
            raise EmptyCart(owner)

        total = sum((price * quantity for _, quantity, price in lines), Decimal("0"))

        order = Order(owner_id=owner, total=total)
        db.add(order)
        db.flush()  # assigns order.id and created_at

        for product_id, quantity, price in lines:
            db.add(OrderItem(order_id=order.id, product_id=product_id, quantity=quantity, price=price))
        db.flush()

        db.query(CartItem).filter(CartItem.owner_id == owner).delete(synchronize_session=False)
        db.query(Cart).filter(Cart.owner_id == owner).delete(synchronize_session=False)
        # load created_at and the lines, then detach so nothing reloads after commit
        db.refresh(order, ["created_at", "items"])
        db.expunge(order)

    logger.info("order_placed", owner=owner, order_id=order.id, total=str(total), lines=len(lines))
    return order
