from sqlalchemy import func

from cart_service.models import Cart, CartItem, OrderItem, Product


def stock_of(db, product_id):
    return db.query(Product.stock).filter(Product.id == product_id).scalar()


def cart_lines(db, owner):
    rows = (
        db.query(CartItem.product_id, CartItem.quantity)
        .filter(CartItem.owner_id == owner)
        .order_by(CartItem.product_id)
        .all()
    )
    return {product_id: quantity for product_id, quantity in rows}


def has_cart(db, owner):
    return db.query(Cart.owner_id).filter(Cart.owner_id == owner).first() is not None


def reserved_total(db, product_id):
    return db.query(func.coalesce(func.sum(CartItem.quantity), 0)).filter(CartItem.product_id == product_id).scalar()


def ordered_total(db, product_id):
    return db.query(func.coalesce(func.sum(OrderItem.quantity), 0)).filter(OrderItem.product_id == product_id).scalar()
