"""
Diner session router.
Create-or-read, read and destroy of the customer cart session.
"""

from fastapi import APIRouter, Depends, Response, status

from shared.utils.exceptions import NotFoundError
from shared.utils.schemas import SessionOutput
from rest_api.core.dependencies import get_session_service, session_identity
from rest_api.services.domain import CustomerSessionService


router = APIRouter(prefix="/api/diner/session", tags=["diner-session"])


@router.post("", response_model=SessionOutput)
async def open_session(
    identity: tuple[str, str] = Depends(session_identity),
    sessions: CustomerSessionService = Depends(get_session_service),
) -> SessionOutput:
    """
    Return the device's session, starting one if none exists.

    An expired session is returned as expired rather than restarted;
    the next call after it is destroyed starts a fresh one.
    """
    table_id, device_id = identity
    session = await sessions.create(table_id, device_id)
    return session.to_output(sessions.now())


@router.get("", response_model=SessionOutput)
async def read_session(
    identity: tuple[str, str] = Depends(session_identity),
    sessions: CustomerSessionService = Depends(get_session_service),
) -> SessionOutput:
    table_id, device_id = identity
    session = await sessions.read(table_id, device_id)
    if session is None:
        raise NotFoundError("Customer session", f"{table_id}/{device_id}")
    return session.to_output(sessions.now())


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(
    identity: tuple[str, str] = Depends(session_identity),
    sessions: CustomerSessionService = Depends(get_session_service),
) -> Response:
    table_id, device_id = identity
    await sessions.destroy(table_id, device_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
