"""
Tests for the fulfillment scheduler

An in-memory ledger stands in for OrderRepository and sleeps are instant, so
whole sequences run in milliseconds.
"""
import asyncio
import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.core.exceptions import OrderNotFoundError
from app.domain.order import Order, OrderStatus, validate_transition
from app.services.fulfillment_service import FulfillmentScheduler


class InMemoryLedger:
    """Minimal OrderRepository double that enforces the transition table"""

    def __init__(self, fail_on=None, recovery_lock_free=True):
        self.orders = {}
        self.recovery_lock_free = recovery_lock_free
        self.recovery_lock = MagicMock()
        self.history = {}
        self.fail_on = fail_on
        self._lock = threading.Lock()

    def add(self, status=OrderStatus.PENDING) -> Order:
        now = datetime.now(timezone.utc)
        order = Order(
            id=uuid.uuid4(), name="Jane Doe", email="jane@example.com", product_id=1,
            quantity=3, total_amount=Decimal("30.00"), status=status,
            created_at=now, updated_at=now
        )
        self.orders[str(order.id)] = order
        self.history[str(order.id)] = [status]
        return order

    def update_status(self, order_id, new_status, conn=None):
        with self._lock:
            key = str(order_id)
            current = self.orders.get(key)
            if current is None:
                raise OrderNotFoundError()
            if new_status == self.fail_on:
                raise RuntimeError("ledger write failed")
            validate_transition(order_id, current.status, new_status)

            now = datetime.now(timezone.utc)
            changes = {"status": new_status, "updated_at": max(current.updated_at, now)}
            if new_status == OrderStatus.PROCESSING:
                changes["processed_at"] = now
            if new_status == OrderStatus.COMPLETED:
                changes["completed_at"] = now
            updated = current.model_copy(update=changes)
            self.orders[key] = updated
            self.history[key].append(new_status)
            return updated

    def find_unfinished(self):
        return [o for o in self.orders.values() if o.status in (OrderStatus.PENDING, OrderStatus.PROCESSING)]

    def acquire_recovery_lock(self):
        return self.recovery_lock if self.recovery_lock_free else None


async def instant_sleep(seconds):
    await asyncio.sleep(0)


def make_scheduler(ledger, sleep=instant_sleep):
    scheduler = FulfillmentScheduler(repository=ledger, sleep=sleep)
    scheduler.start(asyncio.get_running_loop())
    return scheduler


@pytest.mark.asyncio
async def test_pending_order_runs_to_completed():
    ledger = InMemoryLedger()
    order = ledger.add()
    scheduler = make_scheduler(ledger)

    await asyncio.wrap_future(scheduler.schedule(order.id))

    done = ledger.orders[str(order.id)]
    assert ledger.history[str(order.id)] == [OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.COMPLETED]
    assert done.processed_at <= done.completed_at
    assert done.updated_at >= done.created_at
    assert scheduler.in_flight == 0


@pytest.mark.asyncio
async def test_delays_follow_configuration():
    ledger = InMemoryLedger()
    order = ledger.add()
    slept = []

    async def recording_sleep(seconds):
        slept.append(seconds)

    scheduler = FulfillmentScheduler(
        repository=ledger, start_delay=0.1, processing_delay=2.0,
        completion_delay=3.0, sleep=recording_sleep
    )
    scheduler.start(asyncio.get_running_loop())

    await asyncio.wrap_future(scheduler.schedule(order.id))

    assert slept == [0.1, 2.0, 3.0]


@pytest.mark.asyncio
async def test_error_moves_order_to_failed():
    ledger = InMemoryLedger(fail_on=OrderStatus.COMPLETED)
    order = ledger.add()
    scheduler = make_scheduler(ledger)

    await asyncio.wrap_future(scheduler.schedule(order.id))

    assert ledger.history[str(order.id)] == [OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.FAILED]


@pytest.mark.asyncio
async def test_cancelled_order_stops_sequence():
    ledger = InMemoryLedger()
    order = ledger.add()
    gate = asyncio.Event()

    async def blocking_sleep(seconds):
        await gate.wait()

    scheduler = make_scheduler(ledger, sleep=blocking_sleep)
    future = scheduler.schedule(order.id)

    # Admin cancels while the sequence waits
    ledger.update_status(order.id, OrderStatus.CANCELLED)
    gate.set()
    await asyncio.wrap_future(future)

    assert ledger.orders[str(order.id)].status == OrderStatus.CANCELLED
    assert ledger.history[str(order.id)] == [OrderStatus.PENDING, OrderStatus.CANCELLED]


@pytest.mark.asyncio
async def test_recover_resumes_unfinished_orders():
    ledger = InMemoryLedger()
    pending = ledger.add(OrderStatus.PENDING)
    processing = ledger.add(OrderStatus.PROCESSING)
    completed = ledger.add(OrderStatus.COMPLETED)
    scheduler = make_scheduler(ledger)

    count = await scheduler.recover()
    assert count == 2

    while scheduler.in_flight:
        await asyncio.sleep(0.01)

    assert ledger.orders[str(pending.id)].status == OrderStatus.COMPLETED
    # Processing orders skip straight to completion
    assert ledger.history[str(processing.id)] == [OrderStatus.PROCESSING, OrderStatus.COMPLETED]
    assert ledger.history[str(completed.id)] == [OrderStatus.COMPLETED]


@pytest.mark.asyncio
async def test_recover_skipped_when_another_worker_holds_the_lock():
    ledger = InMemoryLedger(recovery_lock_free=False)
    pending = ledger.add(OrderStatus.PENDING)
    scheduler = make_scheduler(ledger)

    assert await scheduler.recover() == 0
    assert scheduler.in_flight == 0
    assert ledger.history[str(pending.id)] == [OrderStatus.PENDING]


@pytest.mark.asyncio
async def test_shutdown_releases_recovery_lock():
    ledger = InMemoryLedger()
    scheduler = make_scheduler(ledger)

    await scheduler.recover()
    ledger.recovery_lock.close.assert_not_called()

    await scheduler.shutdown()

    ledger.recovery_lock.close.assert_called_once()


def test_schedule_without_running_loop_returns_none():
    scheduler = FulfillmentScheduler(repository=InMemoryLedger())

    assert scheduler.schedule(uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_shutdown_cancels_in_flight():
    ledger = InMemoryLedger()
    order = ledger.add()

    async def forever(seconds):
        await asyncio.Event().wait()

    scheduler = make_scheduler(ledger, sleep=forever)
    future = scheduler.schedule(order.id)
    await asyncio.sleep(0)
    assert scheduler.in_flight == 1

    await scheduler.shutdown()

    assert future.cancelled()
    assert scheduler.in_flight == 0
    # Left pending for the next recovery sweep
    assert ledger.orders[str(order.id)].status == OrderStatus.PENDING
