"""
Fulfillment Scheduler

Drives accepted orders through pending -> processing -> completed in the
background, after the HTTP response has been sent.

The order row is the durable record of intent: every step is written through
OrderRepository.update_status, so an order interrupted by a restart is simply
picked up again by recover() on the next startup. Unexpected errors move the
order to failed; there is no automatic retry.
"""
import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Awaitable, Callable, Dict, Optional

from app.core.config import settings
from app.core.exceptions import InvalidTransitionError, OrderNotFoundError
from app.domain.order import OrderStatus
from app.repositories.order_repository import OrderRepository

logger = logging.getLogger(__name__)


class FulfillmentScheduler:
    """
    Schedules fulfillment sequences on the application's event loop

    schedule() is safe to call from any thread. Ledger writes run in worker
    threads so the synchronous repository never blocks the loop.
    """

    def __init__(
        self,
        repository: OrderRepository = None,
        start_delay: float = 0.1,
        processing_delay: float = 2.0,
        completion_delay: float = 3.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.repository = repository or OrderRepository()
        self.start_delay = start_delay
        self.processing_delay = processing_delay
        self.completion_delay = completion_delay
        self._sleep = sleep
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._futures: Dict[str, Future] = {}
        self._recovery_lock = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls) -> "FulfillmentScheduler":
        return cls(
            start_delay=settings.FULFILLMENT_START_DELAY_SECONDS,
            processing_delay=settings.FULFILLMENT_PROCESSING_DELAY_SECONDS,
            completion_delay=settings.FULFILLMENT_COMPLETION_DELAY_SECONDS,
        )

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._futures)

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Bind to the loop sequences will run on (the running loop by default)"""
        self._loop = loop or asyncio.get_running_loop()
        logger.info("Fulfillment scheduler started")

    def schedule(self, order_id, from_status: OrderStatus = OrderStatus.PENDING) -> Optional[Future]:
        """
        Start the fulfillment sequence for an order

        Args:
            order_id: Order to fulfill
            from_status: Status the order is currently in (processing orders
                skip straight to the completion step)

        Returns:
            Future of the running sequence, or None when the scheduler is not
            running (the order stays pending until the next recovery sweep)
        """
        if self._loop is None or self._loop.is_closed():
            logger.warning(
                f"Fulfillment scheduler not running; order {order_id} will be resumed on next startup"
            )
            return None

        key = str(order_id)
        future = asyncio.run_coroutine_threadsafe(
            self.run(order_id, OrderStatus(from_status)), self._loop
        )
        with self._lock:
            self._futures[key] = future
        future.add_done_callback(lambda done: self._forget(key, done))
        return future

    def _forget(self, key: str, future: Future) -> None:
        with self._lock:
            if self._futures.get(key) is future:
                del self._futures[key]

    async def _transition(self, order_id, status: OrderStatus):
        return await asyncio.to_thread(self.repository.update_status, order_id, status)

    async def run(self, order_id, from_status: OrderStatus = OrderStatus.PENDING) -> None:
        """Run one order's fulfillment sequence to a terminal status"""
        try:
            if from_status == OrderStatus.PENDING:
                await self._sleep(self.start_delay)
                await self._sleep(self.processing_delay)
                await self._transition(order_id, OrderStatus.PROCESSING)
                logger.info(f"Order {order_id} is processing")

            await self._sleep(self.completion_delay)
            await self._transition(order_id, OrderStatus.COMPLETED)
            logger.info(f"Order {order_id} completed")

        except asyncio.CancelledError:
            logger.info(f"Fulfillment of order {order_id} cancelled")
            raise
        except InvalidTransitionError as e:
            # Status was changed elsewhere (e.g. cancelled by an admin)
            logger.info(f"Fulfillment of order {order_id} stopped: {e.message}")
        except OrderNotFoundError:
            logger.warning(f"Fulfillment of order {order_id} stopped: order no longer exists")
        except Exception as e:
            logger.error(f"Fulfillment of order {order_id} failed: {e}", exc_info=True)
            await self._mark_failed(order_id)

    async def _mark_failed(self, order_id) -> None:
        try:
            await self._transition(order_id, OrderStatus.FAILED)
            logger.info(f"Order {order_id} marked as failed")
        except InvalidTransitionError as e:
            logger.info(f"Order {order_id} not marked as failed: {e.message}")
        except Exception as e:
            logger.error(f"Could not mark order {order_id} as failed: {e}")

    async def recover(self) -> int:
        """
        Reschedule every order left pending or processing

        Only the worker holding the recovery lock sweeps; it keeps the lock
        until shutdown so workers started later do not drive the same
        orders a second time.

        Returns:
            Number of orders rescheduled
        """
        lock = await asyncio.to_thread(self.repository.acquire_recovery_lock)
        if lock is None:
            logger.info("Recovery sweep skipped: another worker holds the recovery lock")
            return 0
        self._recovery_lock = lock

        try:
            unfinished = await asyncio.to_thread(self.repository.find_unfinished)
        except Exception:
            await self._release_recovery_lock()
            raise

        for order in unfinished:
            self.schedule(order.id, order.status)

        if unfinished:
            logger.info(f"Recovery sweep rescheduled {len(unfinished)} unfinished orders")
        return len(unfinished)

    async def shutdown(self) -> None:
        """Cancel in-flight sequences; their orders are resumed on next startup"""
        with self._lock:
            futures = list(self._futures.values())
            self._futures.clear()

        for future in futures:
            future.cancel()

        if futures:
            logger.info(f"Cancelled {len(futures)} in-flight fulfillment sequences")
            # Let the cancelled tasks unwind
            await asyncio.sleep(0)

        await self._release_recovery_lock()
        self._loop = None

    async def _release_recovery_lock(self) -> None:
        lock, self._recovery_lock = self._recovery_lock, None
        if lock is not None:
            await asyncio.to_thread(lock.close)
