"""
Staff tables router.
Per-table board and the archive-and-clear action.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.config.constants import Actors
from shared.config.logging import staff_logger as logger
from shared.infrastructure.db import get_db
from shared.utils.schemas import ArchiveResult, BoardOutput
from rest_api.services.domain import ArchiveService, OrderService, build_board_output
from rest_api.services.events import OrderEventPublisher, get_order_publisher


router = APIRouter(prefix="/api/staff/tables", tags=["staff"])


@router.get("", response_model=BoardOutput)
def get_table_board(db: Session = Depends(get_db)) -> BoardOutput:
    """Takeaway plus every configured table, with occupancy and help flags."""
    return build_board_output(OrderService(db).list_live_orders())


@router.post("/{table_key}/archive", response_model=ArchiveResult)
async def archive_table(
    table_key: str,
    db: Session = Depends(get_db),
    publisher: OrderEventPublisher = Depends(get_order_publisher),
) -> ArchiveResult:
    """
    Archive every Served order on the table.

    Unserved orders stay live and are listed in skipped_ids. With no
    Served orders the call changes nothing and says so.
    """
    result = ArchiveService(db).archive_table(table_key)
    await publisher.archived(result, Actors.STAFF)
    logger.info(
        "Table archive requested",
        table_id=result.table_id,
        archived=len(result.archived_ids),
        skipped=len(result.skipped_ids),
    )
    return result
