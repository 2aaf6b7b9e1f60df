import asyncio
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from services.notifications import SaleBroadcaster, SaleNotification

logger = logging.getLogger(__name__)

router = APIRouter()


async def forward_sales(
    websocket: WebSocket,
    queue: "asyncio.Queue[SaleNotification]",
    bar_id: Optional[UUID] = None,
) -> None:
    """Push queued sales to one dashboard until cancelled."""
    while True:
        notification = await queue.get()
        try:
            if bar_id is None or notification.bar_id == bar_id:
                await websocket.send_json({"type": "sale:created", **notification.to_dict()})
        finally:
            queue.task_done()


async def _until_disconnect(websocket: WebSocket) -> None:
    # Dashboards only listen; anything they send is ignored.
    while True:
        await websocket.receive_text()


@router.websocket("/events/{event_id}/sales")
async def sale_feed(websocket: WebSocket, event_id: UUID, bar_id: Optional[UUID] = None):
    """Live sales of an event, optionally narrowed to one bar."""
    broadcaster: SaleBroadcaster = websocket.app.state.sale_broadcaster
    queue = broadcaster.subscribe(event_id)
    await websocket.accept()
    logger.info("dashboard connected to event %s (bar=%s)", event_id, bar_id)

    sender = asyncio.create_task(forward_sales(websocket, queue, bar_id))
    listener = asyncio.create_task(_until_disconnect(websocket))
    try:
        done, pending = await asyncio.wait({sender, listener}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error("dashboard feed for event %s stopped: %r", event_id, exc)
    finally:
        broadcaster.unsubscribe(event_id, queue)
        logger.info("dashboard disconnected from event %s", event_id)
