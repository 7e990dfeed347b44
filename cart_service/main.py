from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .database import engine
from .errors import StoreError
from .models import Base
from .routers import cart, orders, products
from .utils.logging import configure_logging, logger

configure_logging()

app = FastAPI(title="Cart Service")

Base.metadata.create_all(bind=engine)

app.include_router(products.router)
app.include_router(cart.router)
app.include_router(orders.router)


@app.exception_handler(StoreError)
def _store_unavailable(request: Request, exc: StoreError):
    logger.error("store_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": {"error": "store_unavailable", "message": "The store could not complete the request"}},
    )


@app.get("/")
def root():
    return {"service": "cart-service", "status": "running"}
