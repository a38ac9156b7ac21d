"""
Tests for the shipment status poller and its scheduler.
"""
import asyncio

import httpx
import pytest

from app.jobs.status_poller import PollCycleSummary, StatusPoller, StatusPollScheduler
from app.modules.shipping.registry import build_registry
from app.services.gateway_service import CarrierGatewayService
from tests.conftest import FakeOrderStore, carrier_settings, make_client, make_order


def history_handler(statuses):
    """Answer XPO history lookups from a referenceNumbers -> record map."""
    calls = []

    def handler(request):
        reference = request.url.params.get("referenceNumbers")
        calls.append(reference)
        if reference not in statuses:
            return httpx.Response(404, json={"message": "not found"})
        return httpx.Response(200, json={"data": statuses[reference]})

    handler.calls = calls
    return handler


def make_poller(handler, store, **kwargs):
    registry = build_registry(carrier_settings())
    gateway = CarrierGatewayService(registry, make_client(handler), store)
    kwargs.setdefault("max_workers", 2)
    kwargs.setdefault("default_carrier", "xpo")
    kwargs.setdefault("quote_id_as_load_number", False)
    return StatusPoller(gateway, store, **kwargs)


def bol(pro):
    return {"shippingCompanyName": "xpo", "data": {"referenceNumbers": {"pro": pro}}}


class TestStatusPoller:
    """Test one reconciliation cycle."""

    @pytest.mark.asyncio
    async def test_updates_then_is_idempotent(self):
        store = FakeOrderStore(
            [
                make_order(1, bol_result=bol("P1")),
                make_order(2, status="in_transit", bol_result=bol("P2")),
            ],
            tokens={"xpo": "tok"},
        )
        handler = history_handler({
            "P1": {"status": "IN_TRANSIT"},
            "P2": {"deliveryDate": "2025-03-01"},
        })
        poller = make_poller(handler, store)

        first = await poller.run_cycle()
        assert first.to_dict() == {"updated": 2, "skipped": 0, "errored": 0, "unchanged": 0, "total": 2}
        assert sorted(store.status_writes) == [(1, "in_transit"), (2, "delivered")]

        store.status_writes.clear()
        second = await poller.run_cycle()
        assert store.status_writes == []
        assert second.unchanged == 1
        assert second.total == 1

    @pytest.mark.asyncio
    async def test_order_without_keys_is_skipped(self):
        store = FakeOrderStore([make_order(1, orders_meta={"note": "x"})], tokens={"xpo": "tok"})
        handler = history_handler({})
        summary = await make_poller(handler, store).run_cycle()

        assert summary.skipped == 1
        assert summary.errored == 0
        assert handler.calls == []

    @pytest.mark.asyncio
    async def test_carrier_without_token_is_skipped(self):
        store = FakeOrderStore([make_order(1, bol_result=bol("P1"))])
        handler = history_handler({"P1": {"status": "DELIVERED"}})
        summary = await make_poller(handler, store).run_cycle()

        assert summary.skipped == 1
        assert handler.calls == []
        assert store.status_writes == []

    @pytest.mark.asyncio
    async def test_keys_the_carrier_cannot_use_are_skipped(self):
        store = FakeOrderStore([make_order(1, orders_meta={"exl": "E1"})], tokens={"xpo": "tok"})
        summary = await make_poller(history_handler({}), store).run_cycle()
        assert summary.skipped == 1

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_batch(self):
        store = FakeOrderStore(
            [
                make_order(1, bol_result=bol("P1")),
                make_order(2, bol_result=bol("MISSING")),
                make_order(3, bol_result=bol("P3")),
            ],
            tokens={"xpo": "tok"},
        )
        handler = history_handler({
            "P1": {"status": "PICKED_UP"},
            "P3": {"status": "IN_TRANSIT"},
        })
        summary = await make_poller(handler, store).run_cycle()

        assert summary.errored == 1
        assert summary.updated == 2
        assert summary.total == 3
        assert sorted(store.status_writes) == [(1, "picked_up"), (3, "in_transit")]

    @pytest.mark.asyncio
    async def test_no_regression(self):
        store = FakeOrderStore([make_order(1, status="in_transit", bol_result=bol("P1"))], tokens={"xpo": "tok"})
        handler = history_handler({"P1": {"pickupDate": "2025-03-01"}})
        summary = await make_poller(handler, store).run_cycle()

        assert summary.unchanged == 1
        assert store.status_writes == []

    @pytest.mark.asyncio
    async def test_carrier_resolved_from_metadata(self):
        store = FakeOrderStore(
            [make_order(1, orders_meta={"carrier": "Estes", "pro": "E1"})],
            tokens={"estes": "estes-tok"},
        )
        seen = []

        def handler(request):
            seen.append((request.url.host, dict(request.url.params), request.headers["authorization"]))
            return httpx.Response(200, json={"data": {"status": "IN_TRANSIT"}})

        summary = await make_poller(handler, store).run_cycle()

        assert summary.updated == 1
        assert seen == [("estes.test", {"pro": "E1"}, "Bearer estes-tok")]

    @pytest.mark.asyncio
    async def test_quote_id_used_when_enabled(self):
        store = FakeOrderStore(
            [make_order(1, orders_meta={"carrier": "estes"}, rate_quote_result={"data": {"quoteId": "Q1"}})],
            tokens={"estes": "tok"},
        )
        seen = []

        def handler(request):
            seen.append(dict(request.url.params))
            return httpx.Response(200, json={"data": {}})

        disabled = await make_poller(handler, store).run_cycle()
        assert disabled.skipped == 1

        enabled = await make_poller(handler, store, quote_id_as_load_number=True).run_cycle()
        assert enabled.unchanged == 1
        assert seen == [{"ldn": "Q1"}]

    @pytest.mark.asyncio
    async def test_worker_pool_is_bounded(self):
        orders = [make_order(i, bol_result=bol(f"P{i}")) for i in range(6)]
        store = FakeOrderStore(orders, tokens={"xpo": "tok"})
        poller = make_poller(history_handler({}), store, max_workers=2)

        active = 0
        peak = 0

        async def query_history(carrier, token, keys):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0)
            active -= 1
            return {"data": {"status": "IN_TRANSIT"}}

        poller.gateway.query_history = query_history
        summary = await poller.run_cycle()

        assert summary.updated == 6
        assert peak <= 2


class FailingPoller:
    def __init__(self):
        self.calls = 0

    async def run_cycle(self):
        self.calls += 1
        raise RuntimeError("database unavailable")


class CountingPoller:
    def __init__(self):
        self.calls = 0

    async def run_cycle(self):
        self.calls += 1
        return PollCycleSummary(updated=1, total=1)


class TestStatusPollScheduler:
    """Test the recurring scheduler."""

    @pytest.mark.asyncio
    async def test_run_once_survives_cycle_failure(self):
        scheduler = StatusPollScheduler(FailingPoller(), interval_seconds=60)
        summary = await scheduler.run_once()
        assert summary.to_dict() == PollCycleSummary().to_dict()
        assert scheduler.cycles == 1

    @pytest.mark.asyncio
    async def test_loop_runs_immediately_then_per_interval(self):
        poller = CountingPoller()
        sleeps = []
        third_tick = asyncio.Event()

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) >= 3:
                third_tick.set()
            await asyncio.sleep(0)

        scheduler = StatusPollScheduler(poller, interval_seconds=300, sleep=fake_sleep)
        task = scheduler.start()
        assert scheduler.running
        assert scheduler.start() is task

        await asyncio.wait_for(third_tick.wait(), timeout=1)
        await scheduler.stop()

        assert not scheduler.running
        assert poller.calls >= 3
        assert set(sleeps) == {300}
        assert scheduler.last_summary.updated == 1

    @pytest.mark.asyncio
    async def test_concurrent_runs_do_not_overlap(self):
        active = 0
        peak = 0

        class SlowPoller:
            async def run_cycle(self):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0)
                await asyncio.sleep(0)
                active -= 1
                return PollCycleSummary(total=1)

        scheduler = StatusPollScheduler(SlowPoller(), interval_seconds=60)
        await asyncio.gather(scheduler.run_once(), scheduler.run_once())

        assert peak == 1
        assert scheduler.cycles == 2

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        scheduler = StatusPollScheduler(CountingPoller(), interval_seconds=1)
        await scheduler.stop()
        assert not scheduler.running
