"""
Polling Fallback

Rebuilds the live event stream from periodic order list fetches: each
fetch is compared with the previous snapshot and the differences are
reported as new orders, changed orders and orders that disappeared.

Comparison is by full value, so any edit (price, quantity, payment fields)
counts as a change, not only status moves.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional

from orderflow.status import TERMINAL_STATUS, is_terminal

logger = logging.getLogger(__name__)

Order = dict[str, Any]
Fetch = Callable[[], Awaitable[list[Order]]]


def order_id(order: Mapping[str, Any]) -> Optional[str]:
    return order.get("id") or order.get("_id")


def index_orders(orders: Iterable[Order]) -> dict[str, Order]:
    """Orders keyed by id; entries without an id are dropped."""
    return {oid: order for order in orders if (oid := order_id(order))}


@dataclass
class OrderDiff:
    new: list[Order] = field(default_factory=list)
    changed: list[tuple[Order, Order]] = field(default_factory=list)  # (current, previous)
    removed: list[Order] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.new or self.changed or self.removed)


def diff_orders(previous: Mapping[str, Order], current: Iterable[Order]) -> OrderDiff:
    """
    Compare two snapshots.

    Orders that first show up already completed are not reported as new;
    they never were active for this viewer.
    """
    diff = OrderDiff()
    current_index = index_orders(current)

    for oid, order in current_index.items():
        old = previous.get(oid)
        if old is None:
            if not is_terminal(order.get("status")):
                diff.new.append(order)
        elif old != order:
            diff.changed.append((order, old))

    for oid, old in previous.items():
        if oid not in current_index:
            diff.removed.append(old)

    return diff


async def _call(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"Polling callback failed: {e}")


class OrderPoller:
    """
    Periodic fetch + diff loop.

    Args:
        fetch: Returns the current order list for the viewer's scope
        on_new_order: ``(order)`` for orders seen for the first time
        on_status_change: ``(current, previous)`` for changed orders
        interval: Seconds between fetches
        diff_first_fetch: Diff the first fetch against an empty snapshot
            (polling is the only source of truth) instead of just storing it
        initial_snapshot: Orders already known to the caller; the first
            fetch is then diffed against them
        on_removed: ``(previous)`` for orders that disappeared. Without it a
            disappearance is reported to ``on_status_change`` as a move to
            the terminal status.
        failure_log_threshold: Consecutive failed fetches before a warning
    """

    def __init__(
        self,
        fetch: Fetch,
        on_new_order: Optional[Callable[[Order], Any]] = None,
        on_status_change: Optional[Callable[[Order, Order], Any]] = None,
        interval: float = 3.0,
        diff_first_fetch: bool = False,
        initial_snapshot: Optional[Iterable[Order]] = None,
        on_removed: Optional[Callable[[Order], Any]] = None,
        failure_log_threshold: int = 3,
    ):
        self.fetch = fetch
        self.on_new_order = on_new_order
        self.on_status_change = on_status_change
        self.on_removed = on_removed
        self.interval = interval
        self.diff_first_fetch = diff_first_fetch
        self.failure_log_threshold = failure_log_threshold

        self._snapshot: Optional[dict[str, Order]] = (
            index_orders(initial_snapshot) if initial_snapshot is not None else None
        )
        self._in_flight = False
        self._consecutive_failures = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> Optional[dict[str, Order]]:
        return self._snapshot

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> Optional[OrderDiff]:
        """
        One fetch and diff.

        Returns:
            The differences reported, or None when skipped (fetch already
            in flight) or failed
        """
        if self._in_flight:
            return None
        self._in_flight = True
        try:
            try:
                orders = await self.fetch()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._record_failure(e)
                return None

            if self._consecutive_failures:
                logger.info(f"Polling recovered after {self._consecutive_failures} failed fetch(es)")
                self._consecutive_failures = 0

            previous = self._snapshot
            if previous is None and not self.diff_first_fetch:
                self._snapshot = index_orders(orders)
                return OrderDiff()

            diff = diff_orders(previous or {}, orders)
            self._snapshot = index_orders(orders)
            await self._report(diff)
            return diff
        finally:
            self._in_flight = False

    async def _report(self, diff: OrderDiff) -> None:
        for order in diff.new:
            await _call(self.on_new_order, order)

        for current, previous in diff.changed:
            await _call(self.on_status_change, current, previous)

        for previous in diff.removed:
            if self.on_removed is not None:
                await _call(self.on_removed, previous)
            elif not is_terminal(previous.get("status")):
                inferred = {**previous, "status": TERMINAL_STATUS.value}
                await _call(self.on_status_change, inferred, previous)

    def _record_failure(self, exc: Exception) -> None:
        self._consecutive_failures += 1
        if self._consecutive_failures == self.failure_log_threshold:
            logger.warning(
                f"Polling fetch failed {self._consecutive_failures} times in a row "
                f"(still polling every {self.interval}s): {exc}"
            )
        else:
            logger.debug(f"Polling fetch failed: {exc}")

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> Callable[[], None]:
        """
        Poll now and then every ``interval`` seconds until stopped.

        Returns:
            A stop function; calling it more than once is harmless
        """
        if not self.running:
            self._task = asyncio.get_running_loop().create_task(self._loop())
        return self.stop

    async def _loop(self) -> None:
        while True:
            await self.poll_once()
            await asyncio.sleep(self.interval)

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        self._snapshot = None
        self._in_flight = False
        self._consecutive_failures = 0
