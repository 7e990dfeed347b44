import os
import tempfile

# Must be set before cart_service.config is imported anywhere.
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.mkdtemp(prefix="cart-service-"), "app.db")
os.environ["EVENTS_ENABLED"] = "false"

from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from cart_service import crud
from cart_service.database import make_engine
from cart_service.models import Base


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'cart.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def add_product(db):
    """Create a product and return its id."""

    def _add(name="Speaker", price="10.00", stock=5, description=None):
        product = crud.create_product(db, name=name, price=Decimal(price), stock=stock, description=description)
        product_id = product.id
        # leave no open transaction behind for other sessions to wait on
        db.commit()
        return product_id

    return _add
