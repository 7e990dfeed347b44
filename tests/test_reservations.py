from unittest import mock

import pytest

from cart_service.errors import InsufficientStock, InvalidArgument, NotFound
from cart_service.reservations import release, reserve

from .helpers import cart_lines, has_cart, stock_of


class TestReserve:
    def test_reserve_moves_stock_into_cart(self, db, add_product):
        pid = add_product(stock=5)

        reserve(db, "u1", pid, 3)

        assert stock_of(db, pid) == 2
        assert cart_lines(db, "u1") == {pid: 3}
        assert has_cart(db, "u1")

    def test_repeat_reservation_increments_the_line(self, db, add_product):
        pid = add_product(stock=10)

        reserve(db, "u1", pid, 2)
        reserve(db, "u1", pid, 3)

        assert cart_lines(db, "u1") == {pid: 5}
        assert stock_of(db, pid) == 5

    def test_reserve_whole_stock(self, db, add_product):
        pid = add_product(stock=4)

        reserve(db, "u1", pid, 4)

        assert stock_of(db, pid) == 0

    def test_insufficient_stock_leaves_everything_unchanged(self, db, add_product):
        pid = add_product(stock=2)

        with pytest.raises(InsufficientStock) as exc_info:
            reserve(db, "u1", pid, 3)

        assert exc_info.value.product_id == pid
        assert exc_info.value.available == 2
        assert exc_info.value.requested == 3
        assert stock_of(db, pid) == 2
        assert cart_lines(db, "u1") == {}
        assert not has_cart(db, "u1")

    def test_insufficient_stock_keeps_existing_line(self, db, add_product):
        pid = add_product(stock=5)
        reserve(db, "u1", pid, 4)

        with pytest.raises(InsufficientStock):
            reserve(db, "u1", pid, 2)

        assert cart_lines(db, "u1") == {pid: 4}
        assert stock_of(db, pid) == 1

    def test_unknown_product(self, db):
        with pytest.raises(NotFound):
            reserve(db, "u1", 999, 1)
        assert not has_cart(db, "u1")

    @pytest.mark.parametrize("quantity", [0, -1, True, 1.5, "2"])
    def test_invalid_quantity_performs_no_io(self, quantity):
        session = mock.MagicMock()

        with pytest.raises(InvalidArgument):
            reserve(session, "u1", 1, quantity)

        assert session.mock_calls == []

    @pytest.mark.parametrize("owner", ["", "   ", None])
    def test_owner_is_required(self, owner):
        session = mock.MagicMock()

        with pytest.raises(InvalidArgument):
            reserve(session, owner, 1, 1)

        assert session.mock_calls == []

    def test_lock_is_released_after_failure(self, db, add_product):
        from cart_service.locks import KeyedLockRegistry

        registry = KeyedLockRegistry()
        pid = add_product(stock=1)

        with pytest.raises(InsufficientStock):
            reserve(db, "u1", pid, 2, locks=registry)

        assert not registry.lock_for("u1").locked()


class TestRelease:
    def test_release_restores_stock_and_drops_line(self, db, add_product):
        pid = add_product(stock=5)
        reserve(db, "u1", pid, 3)

        restored = release(db, "u1", pid)

        assert restored == 3
        assert stock_of(db, pid) == 5
        assert cart_lines(db, "u1") == {}

    def test_release_twice_restores_once(self, db, add_product):
        pid = add_product(stock=5)
        reserve(db, "u1", pid, 2)

        release(db, "u1", pid)
        with pytest.raises(NotFound):
            release(db, "u1", pid)

        assert stock_of(db, pid) == 5

    def test_release_only_touches_one_line(self, db, add_product):
        speaker = add_product(name="Speaker", stock=5)
        laptop = add_product(name="Laptop", stock=3)
        reserve(db, "u1", speaker, 1)
        reserve(db, "u1", laptop, 2)

        release(db, "u1", speaker)

        assert cart_lines(db, "u1") == {laptop: 2}
        assert stock_of(db, speaker) == 5
        assert stock_of(db, laptop) == 1

    def test_release_of_other_owners_line_is_not_found(self, db, add_product):
        pid = add_product(stock=5)
        reserve(db, "u1", pid, 2)

        with pytest.raises(NotFound):
            release(db, "u2", pid)

        assert cart_lines(db, "u1") == {pid: 2}
        assert stock_of(db, pid) == 3


def test_add_then_remove_then_checkout_scenario(db, add_product):
    from cart_service.checkout import checkout
    from cart_service.errors import EmptyCart

    pid = add_product(stock=5)

    reserve(db, "u1", pid, 3)
    assert stock_of(db, pid) == 2

    with pytest.raises(InsufficientStock):
        reserve(db, "u2", pid, 3)
    assert stock_of(db, pid) == 2

    release(db, "u1", pid)
    assert stock_of(db, pid) == 5

    with pytest.raises(EmptyCart):
        checkout(db, "u1")
