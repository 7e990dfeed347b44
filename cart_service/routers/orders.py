from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..checkout import checkout
from ..database import get_db
from ..errors import EmptyCart, InvalidArgument, NotFound
from ..messaging import emit

router = APIRouter(tags=["Orders"])


@router.post("/checkout/order", response_model=schemas.OrderOut, status_code=status.HTTP_201_CREATED)
def checkout_order(body: schemas.CheckoutRequest, db: Session = Depends(get_db)):
    """Convert the owner's reserved cart into an order.

    An empty cart is an ordinary outcome and comes back as 400 with
    ``{"error": "empty_cart"}``.
    """
    try:
        order = checkout(db, body.user_id)
    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except EmptyCart:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "empty_cart", "message": "Your cart is empty"},
        )

    emit(
        "order.placed",
        order_id=order.id,
        user_id=order.owner_id,
        total=str(order.total),
        items=[{"product_id": i.product_id, "quantity": i.quantity, "price": str(i.price)} for i in order.items],
    )
    return order


@router.get("/orders", response_model=list[schemas.OrderOut])
def list_orders(
    user_id: str = Query(..., min_length=1, description="Order owner"),
    db: Session = Depends(get_db),
):
    try:
        return crud.list_orders(db, user_id)
    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/orders/{order_id}", response_model=schemas.OrderOut)
def get_order(order_id: int, db: Session = Depends(get_db)):
    try:
        return crud.get_order(db, order_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
