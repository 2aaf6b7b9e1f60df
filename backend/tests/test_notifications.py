import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import httpx
from fastapi.testclient import TestClient

from main import app
from routers.dashboard import forward_sales
from services.notifications import (
    FanOutSaleNotifier,
    SaleBroadcaster,
    SaleNotification,
    WebhookSaleNotifier,
    build_sale_notifier,
)
from services.sales import SalesService

WEBHOOK_URL = "https://dashboard.test/hooks/sales"


def make_notification(event_id, bar_id=None, quantity=1):
    return SaleNotification(
        event_id=event_id,
        bar_id=bar_id or uuid.uuid4(),
        sale={
            "id": uuid.uuid4(),
            "cocktail_id": uuid.uuid4(),
            "quantity": quantity,
            "created_at": datetime(2025, 1, 1, 22, 15, tzinfo=timezone.utc),
        },
    )


def webhook_settings(url=""):
    return SimpleNamespace(sale_webhook_url=url, sale_webhook_timeout=1.0, sale_queue_maxsize=10)


class RecordingSocket:
    def __init__(self):
        self.sent = []

    async def send_json(self, data):
        self.sent.append(data)


async def test_broadcast_reaches_only_subscribers_of_the_event():
    broadcaster = SaleBroadcaster()
    festival, other = uuid.uuid4(), uuid.uuid4()
    first = broadcaster.subscribe(festival)
    second = broadcaster.subscribe(festival)
    elsewhere = broadcaster.subscribe(other)

    await broadcaster.publish(make_notification(festival))

    assert (first.qsize(), second.qsize(), elsewhere.qsize()) == (1, 1, 0)
    broadcaster.unsubscribe(festival, first)
    broadcaster.unsubscribe(festival, second)
    assert broadcaster.subscriber_count(festival) == 0


async def test_broadcast_without_subscribers_keeps_nothing():
    broadcaster = SaleBroadcaster(maxsize=1)
    event_id = uuid.uuid4()
    for _ in range(5):
        await broadcaster.publish(make_notification(event_id))

    # A dashboard that connects later starts from an empty queue.
    assert broadcaster.subscribe(event_id).empty()


async def test_slow_dashboard_drops_sales_instead_of_blocking(caplog):
    broadcaster = SaleBroadcaster(maxsize=1)
    event_id = uuid.uuid4()
    queue = broadcaster.subscribe(event_id)

    await broadcaster.publish(make_notification(event_id, quantity=1))
    await broadcaster.publish(make_notification(event_id, quantity=2))

    assert queue.qsize() == 1
    assert queue.get_nowait().sale["quantity"] == 1
    assert "dashboard queue full" in caplog.text


async def test_forward_sales_filters_by_bar():
    broadcaster = SaleBroadcaster()
    event_id, bar_id = uuid.uuid4(), uuid.uuid4()
    queue = broadcaster.subscribe(event_id)
    socket = RecordingSocket()
    await broadcaster.publish(make_notification(event_id, quantity=1))
    await broadcaster.publish(make_notification(event_id, bar_id=bar_id, quantity=2))

    task = asyncio.create_task(forward_sales(socket, queue, bar_id))
    await asyncio.wait_for(queue.join(), timeout=1)
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)

    assert [(m["type"], m["bar_id"], m["sale"]["quantity"]) for m in socket.sent] == [
        ("sale:created", str(bar_id), 2)
    ]


def test_dashboard_socket_streams_sales_of_its_event():
    event_id = uuid.uuid4()
    with TestClient(app) as tc:
        broadcaster = app.state.sale_broadcaster
        with tc.websocket_connect(f"/dashboard/events/{event_id}/sales") as ws:
            assert broadcaster.subscriber_count(event_id) == 1
            tc.portal.call(broadcaster.publish, make_notification(uuid.uuid4()))
            tc.portal.call(broadcaster.publish, make_notification(event_id, quantity=3))
            message = ws.receive_json()
        assert broadcaster.subscriber_count(event_id) == 0

    assert message["type"] == "sale:created"
    assert message["event_id"] == str(event_id)
    assert message["sale"]["quantity"] == 3


async def test_webhook_posts_serialized_sale():
    received = []

    def handler(request):
        received.append(request)
        return httpx.Response(202)

    event_id, bar_id = uuid.uuid4(), uuid.uuid4()
    notification = make_notification(event_id, bar_id)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        notifier = WebhookSaleNotifier(WEBHOOK_URL, client=client)
        await notifier.publish(notification)
        await notifier.drain()

    assert len(received) == 1
    assert str(received[0].url) == WEBHOOK_URL
    body = json.loads(received[0].content)
    assert set(body) == {"event_id", "bar_id", "sale", "depletions"}
    assert body["event_id"] == str(event_id)
    assert body["bar_id"] == str(bar_id)
    assert body["sale"]["id"] == str(notification.sale["id"])
    assert body["sale"]["created_at"] == "2025-01-01T22:15:00+00:00"


async def test_webhook_publish_does_not_wait_for_delivery():
    gate = asyncio.Event()
    delivered = []

    async def handler(request):
        await gate.wait()
        delivered.append(request)
        return httpx.Response(200)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        notifier = WebhookSaleNotifier(WEBHOOK_URL, client=client)
        await asyncio.wait_for(notifier.publish(make_notification(uuid.uuid4())), timeout=1)
        assert delivered == []

        gate.set()
        await notifier.drain()

    assert len(delivered) == 1


async def test_webhook_errors_and_timeouts_are_logged_not_raised(caplog):
    def handler(request):
        if request.headers.get("x-attempt") == "timeout":
            raise httpx.ReadTimeout("dashboard too slow", request=request)
        return httpx.Response(503)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        notifier = WebhookSaleNotifier(WEBHOOK_URL, client=client)
        assert await notifier.deliver(make_notification(uuid.uuid4())) is False

        client.headers["x-attempt"] = "timeout"
        assert await notifier.deliver(make_notification(uuid.uuid4())) is False

    failures = [r for r in caplog.records if "webhook delivery" in r.getMessage()]
    assert len(failures) == 2
    assert all(r.levelno == logging.ERROR for r in failures)


async def test_sale_commits_when_webhook_rejects_it(db, seed, caplog):
    event = await seed.event()
    bar = await seed.bar(event)
    x = await seed.drink("Drink X")
    sup = await seed.supplier("Supplier")
    cocktail = await seed.cocktail("Shot", 50)
    await seed.recipe(event, "Shot", 50, [(x, 100)])
    await seed.lot(bar, x, sup, 500)
    posted = []

    def handler(request):
        posted.append(json.loads(request.content))
        return httpx.Response(500)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        webhook = WebhookSaleNotifier(WEBHOOK_URL, client=client)
        result = await SalesService(db, webhook).sell(bar.id, cocktail.id, 2)
        await webhook.drain()

    assert result.sale.quantity == 2
    assert [d["amount"] for d in posted[0]["depletions"]] == [100]
    assert posted[0]["depletions"][0]["drink_id"] == str(x.id)
    assert "webhook delivery" in caplog.text


async def test_notifier_choice_follows_settings():
    broadcaster = SaleBroadcaster()

    assert build_sale_notifier(webhook_settings(), broadcaster) is broadcaster

    combined = build_sale_notifier(webhook_settings(WEBHOOK_URL), broadcaster)
    assert isinstance(combined, FanOutSaleNotifier)
    assert combined.notifiers[0] is broadcaster
    webhook = combined.notifiers[1]
    assert isinstance(webhook, WebhookSaleNotifier)
    assert webhook.url == WEBHOOK_URL
    await combined.aclose()


async def test_fan_out_keeps_publishing_after_one_channel_fails():
    class Broken(WebhookSaleNotifier):
        async def publish(self, notification):
            raise RuntimeError("webhook misconfigured")

    event_id = uuid.uuid4()
    broadcaster = SaleBroadcaster()
    queue = broadcaster.subscribe(event_id)
    async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))) as client:
        fan_out = FanOutSaleNotifier([Broken(WEBHOOK_URL, client=client), broadcaster])
        await fan_out.publish(make_notification(event_id))

    assert queue.qsize() == 1
