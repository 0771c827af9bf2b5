"""
Table Aggregator.

Derives the per-table view the staff board triages from. Everything here
is a pure function of the snapshot: same orders in, same board out.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Sequence

from shared.config.constants import OrderStatus, ItemStatus
from shared.config.settings import settings
from shared.utils.schemas import BoardOutput, Order, TableSummary


def normalize_table_key(table_id: str | None) -> str:
    """Blank or missing table ids belong to the takeaway bucket."""
    if table_id is None:
        return settings.takeaway_key
    table_id = table_id.strip()
    return table_id or settings.takeaway_key


def default_table_keys() -> list[str]:
    """Takeaway first, then the numbered tables."""
    return [settings.takeaway_key] + [
        str(n) for n in range(1, settings.board_table_count + 1)
    ]


def group_orders_by_table(orders: Iterable[Order]) -> dict[str, list[Order]]:
    """
    Group a snapshot by table key.

    Keys appear in first-seen order and each group keeps snapshot order.
    The takeaway key is always present, possibly empty.
    """
    groups: dict[str, list[Order]] = {settings.takeaway_key: []}
    for order in orders:
        groups.setdefault(normalize_table_key(order.table_id), []).append(order)
    return groups


def _order_pending(order: Order) -> bool:
    if order.status != OrderStatus.SERVED:
        return True
    return any(item.status != ItemStatus.SERVED for item in order.items)


def summarize_table(key: str, orders: Sequence[Order]) -> TableSummary:
    return TableSummary(
        key=key,
        orders=list(orders),
        is_occupied=bool(orders),
        has_pending=any(_order_pending(order) for order in orders),
        needs_help=any(order.help_requested for order in orders),
        awaiting_approval=any(order.status == OrderStatus.PENDING for order in orders),
        ticket_count=len(orders),
    )


def _sort_key(key: str) -> tuple[int, int, str]:
    if key == settings.takeaway_key:
        return (0, 0, key)
    if key.isdigit():
        return (1, int(key), key)
    return (2, 0, key)


def build_table_board(
    orders: Sequence[Order],
    table_keys: Iterable[str] | None = None,
) -> list[TableSummary]:
    """
    One summary per table: the configured keys plus any other key present
    in the snapshot. Takeaway first, numbered tables ascending, then the rest.
    """
    groups = group_orders_by_table(orders)
    keys = set(default_table_keys() if table_keys is None else table_keys)
    keys.update(groups)
    return [summarize_table(key, groups.get(key, [])) for key in sorted(keys, key=_sort_key)]


def build_board_output(orders: Sequence[Order]) -> BoardOutput:
    return BoardOutput(
        tables=build_table_board(orders),
        order_count=len(orders),
        generated_at=datetime.now(timezone.utc),
    )
