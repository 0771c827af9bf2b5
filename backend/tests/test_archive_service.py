"""
Tests for ArchiveService: table/order archival, serve-and-archive and item archival.
"""

import pytest
from sqlalchemy import func, select, update

from shared.config.constants import OrderStatus, ItemStatus, FINAL_STATUS_COMPLETED
from shared.config.settings import settings
from shared.utils.exceptions import (
    ArchiveFailedError,
    ConcurrentModificationError,
    InvalidTransitionError,
    OrderNotFoundError,
)
from rest_api.models import LiveOrder, OrderHistory
from rest_api.services.domain import ArchiveService


def history_count(db_session) -> int:
    return db_session.scalar(select(func.count()).select_from(OrderHistory))


def live_ids(db_session) -> set[str]:
    return set(db_session.scalars(select(LiveOrder.id)).all())


@pytest.fixture
def archive_service(db_session):
    return ArchiveService(db_session)


class TestArchiveScenarios:

    def test_single_order_full_flow(self, db_session, make_order, order_service, archive_service):
        """Approve, ready, serve the only item, archive the table."""
        order = make_order("4", ("Burger", 1, 9.5))

        assert order_service.approve(order.id).status == OrderStatus.RECEIVED
        assert order_service.mark_ready(order.id).status == OrderStatus.READY

        served = order_service.serve_item(order.id, 0)
        assert served.items[0].status == ItemStatus.SERVED
        assert served.status == OrderStatus.SERVED

        result = archive_service.archive_table("4")

        assert result.nothing_to_archive is False
        assert result.archived_ids == [order.id]
        assert result.table_id == "4"
        assert order.id not in live_ids(db_session)

        records = db_session.scalars(select(OrderHistory)).all()
        assert len(records) == 1
        record = records[0]
        assert record.order_id == order.id
        assert record.kind == "order"
        assert record.status == OrderStatus.SERVED
        assert record.final_status == FINAL_STATUS_COMPLETED
        assert record.order_number == order.order_number
        assert record.archived_at is not None
        assert result.history_ids == [record.id]

    def test_takeaway_with_nothing_served(self, db_session, make_order, advance, archive_service):
        """One Ready and one Pending order: nothing to archive, both stay."""
        ready = make_order(None)
        advance(ready.id, OrderStatus.READY)
        pending = make_order(None)

        result = archive_service.archive_table(settings.takeaway_key)

        assert result.nothing_to_archive is True
        assert "No served orders" in result.message
        assert result.archived_ids == []
        assert set(result.skipped_ids) == {ready.id, pending.id}
        assert live_ids(db_session) == {ready.id, pending.id}
        assert history_count(db_session) == 0


class TestArchiveTable:

    def test_archives_exactly_the_served_orders(self, db_session, make_order, advance, archive_service):
        served = [make_order("2") for _ in range(3)]
        for order in served:
            advance(order.id, OrderStatus.SERVED)
        still_cooking = make_order("2")
        advance(still_cooking.id, OrderStatus.RECEIVED)
        other_table = make_order("3")
        advance(other_table.id, OrderStatus.SERVED)

        result = archive_service.archive_table("2")

        assert set(result.archived_ids) == {order.id for order in served}
        assert result.skipped_ids == [still_cooking.id]
        assert history_count(db_session) == 3
        assert live_ids(db_session) == {still_cooking.id, other_table.id}

    def test_empty_table(self, db_session, archive_service):
        result = archive_service.archive_table("9")
        assert result.nothing_to_archive is True
        assert result.skipped_ids == []
        assert history_count(db_session) == 0

    def test_conflict_rolls_back_whole_batch(
        self, db_session, make_order, advance, archive_service, monkeypatch
    ):
        first = make_order("5")
        second = make_order("5")
        for order in (first, second):
            advance(order.id, OrderStatus.SERVED)

        calls = {"n": 0}
        original = ArchiveService._delete_live

        def flaky_delete(self, order_id, expected_status, expected_version):
            calls["n"] += 1
            if calls["n"] == 2:
                raise ConcurrentModificationError(order_id)
            return original(self, order_id, expected_status, expected_version)

        monkeypatch.setattr(ArchiveService, "_delete_live", flaky_delete)

        with pytest.raises(ConcurrentModificationError):
            archive_service.archive_table("5")

        assert live_ids(db_session) == {first.id, second.id}
        assert history_count(db_session) == 0

    def test_database_failure_surfaces_as_archive_failed(
        self, db_session, make_order, advance, archive_service, monkeypatch
    ):
        from sqlalchemy.exc import OperationalError

        order = make_order("6")
        advance(order.id, OrderStatus.SERVED)

        def broken_delete(self, order_id, expected_status, expected_version):
            raise OperationalError("DELETE", {}, Exception("disk I/O error"))

        monkeypatch.setattr(ArchiveService, "_delete_live", broken_delete)

        with pytest.raises(ArchiveFailedError) as exc_info:
            archive_service.archive_table("6")
        assert exc_info.value.status_code == 500
        assert live_ids(db_session) == {order.id}
        assert history_count(db_session) == 0


class TestArchiveOrder:

    def test_served_order_is_archived(self, db_session, make_order, advance, archive_service):
        order = make_order("1")
        advance(order.id, OrderStatus.SERVED)

        result = archive_service.archive_order(order.id)

        assert result.archived_ids == [order.id]
        assert len(result.history_ids) == 1
        assert live_ids(db_session) == set()

    def test_unserved_order_is_left_alone(self, db_session, make_order, advance, archive_service):
        order = make_order("1")
        advance(order.id, OrderStatus.READY)

        result = archive_service.archive_order(order.id)

        assert result.nothing_to_archive is True
        assert result.skipped_ids == [order.id]
        assert result.table_id == "1"
        assert live_ids(db_session) == {order.id}

    def test_missing_order(self, archive_service):
        with pytest.raises(OrderNotFoundError):
            archive_service.archive_order("gone")


class TestServeAndArchive:

    def test_ready_order_goes_straight_to_history(self, db_session, make_order, advance, archive_service):
        order = make_order("7", ("Soup", 1, 6.0), ("Bread", 1, 1.5))
        advance(order.id, OrderStatus.READY)

        result = archive_service.serve_and_archive(order.id)

        assert result.archived_ids == [order.id]
        assert result.table_id == "7"
        record = db_session.scalars(select(OrderHistory)).one()
        assert all(item["status"] == ItemStatus.SERVED for item in record.items)
        assert live_ids(db_session) == set()

    def test_requires_ready(self, db_session, make_order, archive_service):
        order = make_order("7")
        with pytest.raises(InvalidTransitionError):
            archive_service.serve_and_archive(order.id)
        assert live_ids(db_session) == {order.id}


class TestArchiveServedItems:

    def test_moves_served_items_and_keeps_the_rest(
        self, db_session, make_order, advance, order_service, archive_service
    ):
        order = make_order("8", ("Pizza", 1, 12.0), ("Salad", 2, 4.5))
        advance(order.id, OrderStatus.RECEIVED)
        order_service.serve_item(order.id, 1)

        result = archive_service.archive_served_items(order.id)

        assert result.archived_ids == []
        assert len(result.history_ids) == 1
        record = db_session.scalars(select(OrderHistory)).one()
        assert record.kind == "item"
        assert record.items[0]["name"] == "Salad"
        assert record.total_price == 9.0

        remaining = order_service.get_order(order.id)
        assert [item.name for item in remaining.items] == ["Pizza"]
        assert remaining.status == OrderStatus.RECEIVED

    def test_order_removed_once_nothing_remains(self, db_session, make_order, advance, archive_service):
        order = make_order("8", ("Pizza", 1, 12.0), ("Salad", 1, 4.5))
        advance(order.id, OrderStatus.SERVED)

        result = archive_service.archive_served_items(order.id)

        assert result.archived_ids == [order.id]
        assert len(result.history_ids) == 2
        assert live_ids(db_session) == set()

    def test_no_served_items(self, db_session, make_order, archive_service):
        order = make_order("8")
        result = archive_service.archive_served_items(order.id)
        assert result.nothing_to_archive is True
        assert history_count(db_session) == 0

    def test_concurrent_change_aborts(
        self, db_session, make_order, advance, order_service, archive_service, monkeypatch
    ):
        order = make_order("8", ("Pizza", 1, 12.0), ("Salad", 1, 4.5))
        advance(order.id, OrderStatus.RECEIVED)
        order_service.serve_item(order.id, 0)

        row = archive_service._get_row(order.id)
        db_session.execute(
            update(LiveOrder)
            .where(LiveOrder.id == order.id)
            .values(version=LiveOrder.version + 1)
            .execution_options(synchronize_session=False)
        )

        monkeypatch.setattr(archive_service, "_get_row", lambda order_id: row)

        with pytest.raises(ConcurrentModificationError):
            archive_service.archive_served_items(order.id)
        assert history_count(db_session) == 0
