from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..errors import InsufficientStock, InvalidArgument, NotFound
from ..messaging import emit
from ..reservations import release, reserve

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.post("/add")
def add_to_cart(body: schemas.CartAddRequest, db: Session = Depends(get_db)):
    """Reserve stock for the owner's cart."""
    try:
        reserve(db, body.user_id, body.product_id, body.quantity)
    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InsufficientStock as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "insufficient_stock",
                "product_id": e.product_id,
                "available": e.available,
                "requested": e.requested,
            },
        )

    emit("cart.item_reserved", user_id=body.user_id, product_id=body.product_id, quantity=body.quantity)
    return {"status": "ok"}


@router.post("/remove")
def remove_from_cart(body: schemas.CartRemoveRequest, db: Session = Depends(get_db)):
    """Drop a whole cart line and give its stock back."""
    try:
        quantity = release(db, body.user_id, body.product_id)
    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    emit("cart.item_released", user_id=body.user_id, product_id=body.product_id, quantity=quantity)
    return {"status": "ok"}


@router.get("/list", response_model=schemas.CartOut)
def list_cart(
    user_id: str = Query(..., min_length=1, description="Cart owner"),
    db: Session = Depends(get_db),
):
    try:
        items, total = crud.list_cart(db, user_id)
    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"user_id": user_id, "items": items, "total": total}
