from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..errors import InvalidArgument, NotFound
from ..messaging import emit

router = APIRouter(prefix="/products", tags=["Products"])


@router.post("", response_model=schemas.ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(body: schemas.ProductCreate, db: Session = Depends(get_db)):
    try:
        return crud.create_product(
            db,
            name=body.name,
            description=body.description,
            price=body.price,
            stock=body.stock,
        )
    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/list", response_model=list[schemas.ProductOut])
def list_products(db: Session = Depends(get_db)):
    return crud.list_products(db)


@router.get("/{product_id}", response_model=schemas.ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    try:
        return crud.get_product(db, product_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{product_id}/stock", response_model=schemas.ProductOut)
def set_product_stock(product_id: int, body: schemas.StockUpdate, db: Session = Depends(get_db)):
    """Admin restock: overwrite the available stock of a product."""
    try:
        crud.set_stock(db, product_id, body.new_stock)
    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    emit("stock.updated", product_id=product_id, stock=body.new_stock)
    return crud.get_product(db, product_id)
