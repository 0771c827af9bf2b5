"""
Tests for the staff endpoints: lifecycle commands, the table board and archival.
"""

from shared.config.constants import Actors, OrderStatus, ItemStatus
from shared.config.settings import settings
from shared.infrastructure.events import (
    ORDER_STATUS_CHANGED,
    ORDER_ITEM_SERVED,
    ORDER_HELP_CHANGED,
    ORDERS_ARCHIVED,
    ORDER_ITEMS_ARCHIVED,
)


class TestStaffOrderLifecycle:

    def test_approve_ready_serve(self, client, make_order, publisher):
        order = make_order("4", ("Burger", 1, 9.5), ("Fries", 1, 3.0))

        response = client.post(f"/api/staff/orders/{order.id}/approve")
        assert response.status_code == 200
        assert response.json()["status"] == OrderStatus.RECEIVED

        response = client.post(f"/api/staff/orders/{order.id}/ready")
        assert response.json()["status"] == OrderStatus.READY

        response = client.post(f"/api/staff/orders/{order.id}/serve")
        data = response.json()
        assert data["status"] == OrderStatus.SERVED
        assert all(item["status"] == ItemStatus.SERVED for item in data["items"])

        assert publisher.types() == [ORDER_STATUS_CHANGED] * 3
        assert publisher.events[0]["table_id"] == "4"

    def test_skipping_a_step_is_rejected(self, client, make_order, publisher):
        order = make_order()

        response = client.post(f"/api/staff/orders/{order.id}/serve")

        assert response.status_code == 400
        assert "Invalid transition" in response.json()["detail"]
        assert publisher.events == []

    def test_unknown_order(self, client, db_session):
        response = client.post("/api/staff/orders/missing/approve")
        assert response.status_code == 404

    def test_serving_last_item_serves_order(self, client, make_order, advance, publisher):
        order = make_order("2", ("Soup", 1, 6.0), ("Bread", 2, 1.5))
        advance(order.id, OrderStatus.RECEIVED)

        first = client.post(f"/api/staff/orders/{order.id}/items/0/serve").json()
        assert first["status"] == OrderStatus.RECEIVED

        second = client.post(f"/api/staff/orders/{order.id}/items/1/serve").json()
        assert second["status"] == OrderStatus.SERVED
        assert publisher.types() == [ORDER_ITEM_SERVED, ORDER_ITEM_SERVED]

    def test_item_cannot_be_served_while_pending(self, client, make_order):
        order = make_order()
        response = client.post(f"/api/staff/orders/{order.id}/items/0/serve")
        assert response.status_code == 400

    def test_item_index_out_of_range(self, client, make_order, advance):
        order = make_order()
        advance(order.id, OrderStatus.RECEIVED)
        response = client.post(f"/api/staff/orders/{order.id}/items/5/serve")
        assert response.status_code == 404

    def test_resolve_help(self, client, make_order, order_service, publisher):
        order = make_order()
        order_service.set_help_requested(order.id, True, actor=Actors.CUSTOMER)

        response = client.post(f"/api/staff/orders/{order.id}/help/resolve")

        assert response.status_code == 200
        assert response.json()["help_requested"] is False
        assert publisher.types() == [ORDER_HELP_CHANGED]

    def test_live_orders_newest_first(self, client, make_order):
        first = make_order("1")
        second = make_order("2")

        ids = [order["id"] for order in client.get("/api/staff/orders").json()]

        assert ids == [second.id, first.id]


class TestStaffArchive:

    def test_archive_table(self, client, make_order, advance, publisher):
        served = make_order("3")
        advance(served.id, OrderStatus.SERVED)
        cooking = make_order("3")

        response = client.post("/api/staff/tables/3/archive")

        data = response.json()
        assert response.status_code == 200
        assert data["archived_ids"] == [served.id]
        assert data["skipped_ids"] == [cooking.id]
        assert publisher.types() == [ORDERS_ARCHIVED]

        remaining = [order["id"] for order in client.get("/api/staff/orders").json()]
        assert remaining == [cooking.id]

    def test_nothing_to_archive_publishes_nothing(self, client, make_order, publisher):
        make_order(None)

        response = client.post(f"/api/staff/tables/{settings.takeaway_key}/archive")

        assert response.status_code == 200
        assert response.json()["nothing_to_archive"] is True
        assert publisher.events == []

    def test_archive_single_order(self, client, make_order, advance, publisher):
        order = make_order()
        advance(order.id, OrderStatus.SERVED)

        response = client.post(f"/api/staff/orders/{order.id}/archive")

        assert response.json()["archived_ids"] == [order.id]
        assert publisher.events[0]["order_ids"] == [order.id]

    def test_serve_and_archive(self, client, make_order, advance):
        order = make_order()
        advance(order.id, OrderStatus.READY)

        response = client.post(f"/api/staff/orders/{order.id}/serve-and-archive")

        assert response.status_code == 200
        assert client.get("/api/staff/orders").json() == []

    def test_archive_served_items(self, client, make_order, advance, order_service, publisher):
        order = make_order("6", ("Pizza", 1, 12.0), ("Salad", 1, 4.5))
        advance(order.id, OrderStatus.RECEIVED)
        order_service.serve_item(order.id, 0)

        response = client.post(f"/api/staff/orders/{order.id}/items/archive")

        assert response.status_code == 200
        assert len(response.json()["history_ids"]) == 1
        assert publisher.types() == [ORDER_ITEMS_ARCHIVED]
        assert publisher.events[0]["entity"]["order_removed"] is False


class TestTableBoard:

    def test_board_lists_takeaway_then_tables(self, client, make_order, order_service):
        order = make_order("4")
        order_service.set_help_requested(order.id, True, actor=Actors.CUSTOMER)
        make_order(None)

        response = client.get("/api/staff/tables")

        assert response.status_code == 200
        data = response.json()
        assert data["order_count"] == 2
        keys = [table["key"] for table in data["tables"]]
        assert keys[0] == settings.takeaway_key
        table_four = next(table for table in data["tables"] if table["key"] == "4")
        assert table_four["needs_help"] is True
        assert table_four["awaiting_approval"] is True
        assert table_four["ticket_count"] == 1
