"""Error taxonomy shared by the reservation, checkout and repository layers.

``InsufficientStock`` and ``EmptyCart`` are expected business outcomes, not
defects. ``StoreError`` wraps any failure of the durable store; when it is
raised before commit no state has changed.
"""


class CartServiceError(Exception):
    """Base class for all errors raised by the cart service."""


class InvalidArgument(CartServiceError):
    pass


class NotFound(CartServiceError):
    pass


class EmptyCart(CartServiceError):
    def __init__(self, owner: str):
        super().__init__(f"cart of {owner!r} is empty")
        self.owner = owner


class InsufficientStock(CartServiceError):
    def __init__(self, product_id: int, available: int, requested: int):
        super().__init__(
            f"insufficient stock for product {product_id}: available={available} requested={requested}"
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class StoreError(CartServiceError):
    """I/O or transport failure reported by the durable store."""
