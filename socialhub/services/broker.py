"""
In-process long-poll broker.

A poll request that finds nothing to return parks a ``Subscription`` for its
user and waits. ``publish`` hands a payload to every subscription the user has
parked at that moment; a subscription that is never published to is released
by the timeout, by the client going away, or by being evicted when the user
has too many parked polls.

Every subscription resolves exactly once. ``deliver`` and ``expire`` compete
for the same per-subscription lock and only the first one counts, so a
message that races a timeout is either returned to that poll or not at all,
never both.

``publish`` may be called from any thread (sync routes run in a worker pool);
waiters are woken on their own event loop via ``call_soon_threadsafe``.
Single process only: the waiting map lives in memory.
"""
import asyncio
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, Optional, Set

from loguru import logger


class Subscription:
    def __init__(self, user_id: int, loop: asyncio.AbstractEventLoop):
        self.user_id = user_id
        self.registered_at = datetime.now(timezone.utc)
        self.payload: Optional[Any] = None

        self._loop = loop
        self._event = asyncio.Event()
        self._lock = threading.Lock()
        self._outcome: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self._outcome is not None

    @property
    def delivered(self) -> bool:
        return self._outcome == "delivered"

    def _settle(self, outcome: str, payload: Optional[Any] = None) -> bool:
        with self._lock:
            if self._outcome is not None:
                return False
            self._outcome = outcome
            self.payload = payload

        try:
            self._loop.call_soon_threadsafe(self._event.set)
        except RuntimeError:
            # waiter's loop already closed; nobody is left to wake
            logger.debug(f"Poll loop closed before wake-up | user={self.user_id}")
        return True

    def deliver(self, payload: Any) -> bool:
        return self._settle("delivered", payload)

    def expire(self) -> bool:
        return self._settle("expired")

    async def wait(self) -> None:
        await self._event.wait()


class NotificationBroker:
    def __init__(
        self,
        timeout: float = 30.0,
        max_subscriptions_per_user: int = 16,
    ):
        self.timeout = timeout
        self.max_subscriptions_per_user = max_subscriptions_per_user

        self._lock = threading.Lock()
        self._waiting: Dict[int, Set[Subscription]] = defaultdict(set)

    # ------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------
    def subscribe(self, user_id: int) -> Subscription:
        """Park a new subscription for ``user_id``. Must run inside the event loop."""
        subscription = Subscription(user_id, asyncio.get_running_loop())

        evicted = None
        with self._lock:
            waiting = self._waiting[user_id]
            if len(waiting) >= self.max_subscriptions_per_user:
                evicted = min(waiting, key=lambda s: s.registered_at)
                waiting.discard(evicted)
            waiting.add(subscription)

        if evicted is not None and evicted.expire():
            logger.info(f"Poll evicted | user={user_id}")

        logger.debug(f"Poll parked | user={user_id}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            waiting = self._waiting.get(subscription.user_id)
            if waiting is None:
                return
            waiting.discard(subscription)
            if not waiting:
                del self._waiting[subscription.user_id]

    def waiting_count(self, user_id: Optional[int] = None) -> int:
        with self._lock:
            if user_id is not None:
                return len(self._waiting.get(user_id, ()))
            return sum(len(subs) for subs in self._waiting.values())

    # ------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------
    def publish(self, user_id: int, payload: Any) -> int:
        with self._lock:
            waiting = self._waiting.pop(user_id, set())

        delivered = sum(1 for subscription in waiting if subscription.deliver(payload))
        if delivered:
            logger.info(f"Poll resolved by push | user={user_id} subscriptions={delivered}")
        return delivered

    async def wait(
        self,
        subscription: Subscription,
        disconnected: Optional[Awaitable[Any]] = None,
    ) -> Optional[Any]:
        """
        Suspend until the subscription is delivered to, times out, or
        ``disconnected`` completes. Always unregisters the subscription.

        Returns the delivered payload, or ``None`` when nothing arrived.
        """
        waiter = asyncio.ensure_future(subscription.wait())
        watcher = asyncio.ensure_future(disconnected) if disconnected is not None else None

        tasks = {waiter}
        if watcher is not None:
            tasks.add(watcher)

        try:
            await asyncio.wait(tasks, timeout=self.timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            self.unsubscribe(subscription)

            if subscription.expire():
                reason = "disconnect" if watcher is not None and watcher.done() else "timeout"
                logger.debug(f"Poll released by {reason} | user={subscription.user_id}")

        return subscription.payload
