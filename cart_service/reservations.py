"""Move stock between "available" and "reserved" for an owner's cart.

A reservation decrements ``products.stock`` at add-to-cart time and records
the quantity on the owner's cart line, so the cart always reflects stock that
is unavailable to other owners and checkout never re-validates stock.
"""

from __future__ import annotations

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from .database import transaction
from .errors import InsufficientStock, InvalidArgument, NotFound
from .locks import KeyedLockRegistry, owner_locks
from .models import Cart, CartItem, Product
from .utils.logging import logger

_UPSERT_DIALECTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def validate_owner(owner: str) -> str:
    if not isinstance(owner, str) or not owner.strip():
        raise InvalidArgument("owner is required")
    return owner


def validate_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidArgument("quantity must be a positive integer")
    return quantity


def lock_product(db: Session, product_id: int) -> Product | None:
    """Read a product row under an exclusive row lock, bypassing the identity map."""
    return (
        db.query(Product)
        .filter(Product.id == product_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _ensure_cart(db: Session, owner: str) -> None:
    insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    if insert is not None:
        db.execute(insert(Cart).values(owner_id=owner).on_conflict_do_nothing(index_elements=["owner_id"]))
        return

    if db.get(Cart, owner) is None:
        db.add(Cart(owner_id=owner))
        db.flush()


def _add_to_cart_line(db: Session, owner: str, product_id: int, quantity: int) -> None:
    insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    if insert is not None:
        stmt = insert(CartItem).values(owner_id=owner, product_id=product_id, quantity=quantity)
        stmt = stmt.on_conflict_do_update(
            index_elements=["owner_id", "product_id"],
            set_={"quantity": CartItem.quantity + stmt.excluded.quantity},
        )
        db.execute(stmt)
        return

    item = (
        db.query(CartItem)
        .filter(CartItem.owner_id == owner, CartItem.product_id == product_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if item is None:
        db.add(CartItem(owner_id=owner, product_id=product_id, quantity=quantity))
    else:
        item.quantity += quantity
    db.flush()


def reserve(
    db: Session,
    owner: str,
    product_id: int,
    quantity: int,
    *,
    locks: KeyedLockRegistry = owner_locks,
) -> None:
    """Reserve ``quantity`` units of a product into the owner's cart.

    Raises ``InvalidArgument`` before any I/O for a bad owner or quantity,
    ``NotFound`` for an unknown product and ``InsufficientStock`` when the
    product cannot cover the request. Nothing is written unless the whole
    reservation commits.
    """
    validate_owner(owner)
    validate_quantity(quantity)

    with locks.acquire(owner), transaction(db):
        _ensure_cart(db, owner)

        product = lock_product(db, product_id)
        if product is None:
            raise NotFound(f"product {product_id} not found")

        if product.stock < quantity:
            logger.info(
                "reservation_rejected",
                owner=owner,
                product_id=product_id,
                available=product.stock,
                requested=quantity,
            )
            raise InsufficientStock(product_id, product.stock, quantity)

        _add_to_cart_line(db, owner, product_id, quantity)
        product.stock -= quantity
        remaining = product.stock

    logger.info("stock_reserved", owner=owner, product_id=product_id, quantity=quantity, remaining=remaining)


def release(
    db: Session,
    owner: str,
    product_id: int,
    *,
    locks: KeyedLockRegistry = owner_locks,
) -> int:
    """Drop the owner's whole cart line for a product and return its stock.

    Returns the quantity restored. Raises ``NotFound`` when the owner holds no
    reservation for the product.
    """
    validate_owner(owner)

    with locks.acquire(owner), transaction(db):
        item = (
            db.query(CartItem)
            .filter(CartItem.owner_id == owner, CartItem.product_id == product_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if item is None:
            raise NotFound(f"product {product_id} is not in the cart of {owner!r}")

        quantity = item.quantity
        db.delete(item)

        product = lock_product(db, product_id)
        if product is None:
            raise NotFound(f"product {product_id} not found")
        product.stock += quantity

    logger.info("stock_released", owner=owner, product_id=product_id, quantity=quantity)
    return quantity
