"""Outbound sale notifications for dashboards. Delivery is best-effort and never transactional."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set
from uuid import UUID

import httpx

from core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleNotification:
    event_id: UUID
    bar_id: UUID
    sale: Dict[str, Any]
    depletions: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return json.loads(json.dumps(
            {
                "event_id": self.event_id,
                "bar_id": self.bar_id,
                "sale": self.sale,
                "depletions": self.depletions,
            },
            default=_json_default,
        ))


def _json_default(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class SaleNotifier(ABC):
    @abstractmethod
    async def publish(self, notification: SaleNotification) -> None:
        """Deliver one notification. May raise; callers treat failures as non-fatal."""

    async def aclose(self) -> None:
        return None


class NullSaleNotifier(SaleNotifier):
    async def publish(self, notification: SaleNotification) -> None:
        return None


class SaleBroadcaster(SaleNotifier):
    """
    Fans sales out to the dashboards watching an event.

    Each subscriber gets its own bounded queue; with nobody subscribed a
    publish is a no-op. A subscriber that falls behind loses sales rather
    than holding up the POS.
    """

    def __init__(self, maxsize: int = 1000):
        self.maxsize = maxsize
        self._subscribers: Dict[UUID, Set["asyncio.Queue[SaleNotification]"]] = {}

    def subscribe(self, event_id: UUID) -> "asyncio.Queue[SaleNotification]":
        queue: "asyncio.Queue[SaleNotification]" = asyncio.Queue(maxsize=self.maxsize)
        self._subscribers.setdefault(event_id, set()).add(queue)
        return queue

    def unsubscribe(self, event_id: UUID, queue: "asyncio.Queue[SaleNotification]") -> None:
        queues = self._subscribers.get(event_id)
        if queues is None:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[event_id]

    def subscriber_count(self, event_id: UUID) -> int:
        return len(self._subscribers.get(event_id, ()))

    async def publish(self, notification: SaleNotification) -> None:
        for queue in list(self._subscribers.get(notification.event_id, ())):
            try:
                queue.put_nowait(notification)
            except asyncio.QueueFull:
                logger.warning(
                    "dashboard queue full for event %s; dropping sale %s",
                    notification.event_id, notification.sale.get("id"),
                )


class WebhookSaleNotifier(SaleNotifier):
    """POSTs each sale to an external endpoint from a background task; the POS response never waits on it."""

    def __init__(self, url: str, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._pending: Set[asyncio.Task] = set()

    async def publish(self, notification: SaleNotification) -> None:
        task = asyncio.create_task(self.deliver(notification))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def deliver(self, notification: SaleNotification) -> bool:
        try:
            resp = await self.client.post(self.url, json=notification.to_dict())
            resp.raise_for_status()
        except httpx.HTTPError:
            logger.exception("sale %s webhook delivery to %s failed", notification.sale.get("id"), self.url)
            return False
        return True

    async def drain(self) -> None:
        """Wait for deliveries still in flight."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    async def aclose(self) -> None:
        await self.drain()
        if self._owns_client:
            await self.client.aclose()


class FanOutSaleNotifier(SaleNotifier):
    def __init__(self, notifiers: List[SaleNotifier]):
        self.notifiers = notifiers

    async def publish(self, notification: SaleNotification) -> None:
        for notifier in self.notifiers:
            try:
                await notifier.publish(notification)
            except Exception:
                logger.exception("%s failed for sale %s", type(notifier).__name__, notification.sale.get("id"))

    async def aclose(self) -> None:
        for notifier in self.notifiers:
            await notifier.aclose()


def build_sale_notifier(settings: Settings, broadcaster: SaleBroadcaster) -> SaleNotifier:
    """Dashboards always get the broadcast; the webhook is added when configured."""
    if settings.sale_webhook_url:
        logger.info("sale notifications -> dashboards + webhook %s", settings.sale_webhook_url)
        return FanOutSaleNotifier([
            broadcaster,
            WebhookSaleNotifier(settings.sale_webhook_url, timeout=settings.sale_webhook_timeout),
        ])
    return broadcaster
