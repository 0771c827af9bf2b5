"""
Archive Domain Service.

Moves Served orders (or served items) from `orders` into `order_history`.
Each public call is one transaction: history inserts and live deletes
commit together or not at all.
"""

from __future__ import annotations

from typing import Any, Callable, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.constants import (
    Actors,
    OrderStatus,
    ItemStatus,
    HistoryKind,
    FINAL_STATUS_COMPLETED,
)
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import (
    ArchiveFailedError,
    ConcurrentModificationError,
    OrderNotFoundError,
)
from shared.utils.schemas import ArchiveResult
from rest_api.models import LiveOrder, OrderHistory, new_id
from rest_api.services.domain.order_state import (
    check_order_transition,
    is_archivable,
    with_all_items_served,
)
from rest_api.services.domain.table_board import normalize_table_key

logger = get_logger(__name__)


def _history_from_order(row: LiveOrder, items: list[dict[str, Any]] | None = None) -> OrderHistory:
    """Snapshot a whole order as it leaves the live set."""
    return OrderHistory(
        id=new_id(),
        order_id=row.id,
        kind=HistoryKind.ORDER,
        table_id=row.table_id,
        order_number=row.order_number,
        items=items if items is not None else list(row.items),
        total_price=row.total_price,
        help_requested=row.help_requested,
        status=OrderStatus.SERVED,
        final_status=FINAL_STATUS_COMPLETED,
        placed_at=row.timestamp,
    )


def _history_from_item(row: LiveOrder, item: dict[str, Any]) -> OrderHistory:
    """Snapshot one served item moved out of a still-live order."""
    return OrderHistory(
        id=new_id(),
        order_id=row.id,
        kind=HistoryKind.ITEM,
        table_id=row.table_id,
        order_number=row.order_number,
        items=[dict(item)],
        total_price=round(item["quantity"] * item["unit_price"], 2),
        help_requested=False,
        status=OrderStatus.SERVED,
        final_status=FINAL_STATUS_COMPLETED,
        placed_at=row.timestamp,
    )


class ArchiveService:
    """
    Domain service for archival.

    Never writes to an existing history record.
    """

    def __init__(self, db: Session):
        self._db = db

    def _get_row(self, order_id: str) -> LiveOrder:
        row = self._db.scalar(select(LiveOrder).where(LiveOrder.id == order_id))
        if row is None:
            raise OrderNotFoundError(order_id)
        return row

    def _delete_live(self, order_id: str, expected_status: str, expected_version: int) -> None:
        """Conditional delete; zero rows means a concurrent writer got there first."""
        result = self._db.execute(
            delete(LiveOrder)
            .where(
                LiveOrder.id == order_id,
                LiveOrder.status == expected_status,
                LiveOrder.version == expected_version,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                order_id, expected_status=expected_status, expected_version=expected_version
            )

    def _commit_batch(self, scope: str) -> None:
        try:
            safe_commit(self._db)
        except SQLAlchemyError as e:
            raise ArchiveFailedError(scope, error=str(e)) from e

    def _run_batch(self, scope: str, work: Callable[[], Any]) -> Any:
        """
        Run `work` and commit as one transaction.

        Any failure rolls back the whole batch; conflicts surface as 409,
        database failures as ArchiveFailedError.
        """
        try:
            outcome = work()
        except ConcurrentModificationError:
            self._db.rollback()
            raise
        except SQLAlchemyError as e:
            self._db.rollback()
            raise ArchiveFailedError(scope, error=str(e)) from e
        self._commit_batch(scope)
        return outcome

    def _archive_rows(
        self, rows: Sequence[LiveOrder], skipped_ids: list[str], table_id: str, scope: str
    ) -> ArchiveResult:
        snapshot = [(row.id, row.status, row.version, _history_from_order(row)) for row in rows]

        def work() -> list[str]:
            for order_id, status, version, record in snapshot:
                self._db.add(record)
                self._delete_live(order_id, status, version)
            self._db.flush()
            return [record.id for _, _, _, record in snapshot]

        history_ids = self._run_batch(scope, work)
        archived_ids = [order_id for order_id, _, _, _ in snapshot]
        logger.info(
            "Orders archived",
            scope=scope,
            archived_count=len(archived_ids),
            skipped_count=len(skipped_ids),
            order_ids=archived_ids,
        )
        return ArchiveResult(
            archived_ids=archived_ids,
            skipped_ids=skipped_ids,
            history_ids=history_ids,
            table_id=table_id,
            message=f"Archived {len(archived_ids)} order(s) from {scope}",
        )

    # =========================================================================
    # Public operations
    # =========================================================================

    def archive_order(self, order_id: str) -> ArchiveResult:
        """Archive one Served order. Anything else is reported, not moved."""
        row = self._get_row(order_id)
        if not is_archivable(row.status):
            logger.info("Order not archivable", order_id=order_id, status=row.status)
            return ArchiveResult(
                skipped_ids=[order_id],
                nothing_to_archive=True,
                table_id=row.table_id,
                message=f"Order #{row.order_number} is {row.status}, only Served orders can be archived",
            )
        return self._archive_rows([row], [], row.table_id, f"order {order_id}")

    def archive_table(self, table_key: str | None) -> ArchiveResult:
        """Archive every Served order on a table and leave the rest live."""
        key = normalize_table_key(table_key)
        rows = self._db.execute(
            select(LiveOrder)
            .where(LiveOrder.table_id == key)
            .order_by(LiveOrder.timestamp.desc())
        ).scalars().all()

        eligible = [row for row in rows if is_archivable(row.status)]
        skipped_ids = [row.id for row in rows if not is_archivable(row.status)]

        if not eligible:
            logger.info("Nothing to archive on table", table_id=key, live_count=len(rows))
            return ArchiveResult(
                skipped_ids=skipped_ids,
                nothing_to_archive=True,
                table_id=key,
                message=f"No served orders to archive on table {key}",
            )
        return self._archive_rows(eligible, skipped_ids, key, f"table {key}")

    def serve_and_archive(self, order_id: str, *, actor: str = Actors.STAFF) -> ArchiveResult:
        """Ready -> Served and into history in the same transaction."""
        row = self._get_row(order_id)
        check_order_transition(order_id, row.status, OrderStatus.SERVED, actor)

        status, version, order_number, table_id = row.status, row.version, row.order_number, row.table_id
        record = _history_from_order(row, items=with_all_items_served(row.items))

        def work() -> str:
            self._db.add(record)
            self._delete_live(order_id, status, version)
            self._db.flush()
            return record.id

        history_id = self._run_batch(f"order {order_id}", work)
        logger.info("Order served and archived", order_id=order_id, actor=actor)
        return ArchiveResult(
            archived_ids=[order_id],
            history_ids=[history_id],
            table_id=table_id,
            message=f"Order #{order_number} served and archived",
        )

    def archive_served_items(self, order_id: str) -> ArchiveResult:
        """
        Move each served item into its own history record.

        The live order keeps its unserved items; once none remain it is
        deleted.
        """
        row = self._get_row(order_id)
        served = [item for item in row.items if item["status"] == ItemStatus.SERVED]
        remaining = [dict(item) for item in row.items if item["status"] != ItemStatus.SERVED]

        if not served:
            return ArchiveResult(
                skipped_ids=[order_id],
                nothing_to_archive=True,
                table_id=row.table_id,
                message=f"Order #{row.order_number} has no served items to archive",
            )

        status, version, order_number, table_id = row.status, row.version, row.order_number, row.table_id
        records = [_history_from_item(row, item) for item in served]

        def work() -> list[str]:
            self._db.add_all(records)
            if remaining:
                result = self._db.execute(
                    update(LiveOrder)
                    .where(
                        LiveOrder.id == order_id,
                        LiveOrder.status == status,
                        LiveOrder.version == version,
                    )
                    .values(items=remaining, version=version + 1)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise ConcurrentModificationError(
                        order_id, expected_status=status, expected_version=version
                    )
            else:
                self._delete_live(order_id, status, version)
            self._db.flush()
            return [record.id for record in records]

        history_ids = self._run_batch(f"items of order {order_id}", work)
        logger.info(
            "Served items archived",
            order_id=order_id,
            archived_items=len(records),
            remaining_items=len(remaining),
        )
        return ArchiveResult(
            archived_ids=[] if remaining else [order_id],
            history_ids=history_ids,
            table_id=table_id,
            message=f"Archived {len(records)} served item(s) from order #{order_number}",
        )
