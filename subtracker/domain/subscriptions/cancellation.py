"""Deferred cancellation of subscriptions.

A confirmed cancellation moves the subscription to ``processing`` right away
but only writes ``cancelled_at`` once the grace period has elapsed. The timer
task is the single writer for that transition; if the write fails the
workflow falls back to ``active`` and keeps the error for the caller to read.

Timers live in process memory. Stopping the process drops them and the rows
stay active.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import secrets
from datetime import datetime
from typing import Awaitable, Callable, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from subtracker.core.database import Database, utcnow
from subtracker.core.errors import (
    CancellationConflictError,
    NotFoundError,
    SubTrackerError,
    ValidationError,
)

from .models import Subscription
from .services import SubscriptionStore

logger = logging.getLogger("subtracker.cancellation")

Persist = Callable[[int, int, datetime], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


class CancellationState(str, enum.Enum):
    ACTIVE = "active"
    PROCESSING = "processing"
    CANCELLED = "cancelled"


class CancellationWorkflow:
    """State machine for one subscription's cancellation."""

    def __init__(
        self,
        subscription_id: int,
        user_id: int,
        persist: Persist,
        *,
        grace_seconds: float,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = utcnow,
        cancelled_at: Optional[datetime] = None,
    ) -> None:
        self.subscription_id = subscription_id
        self.user_id = user_id
        self.grace_seconds = grace_seconds
        self.state = CancellationState.CANCELLED if cancelled_at else CancellationState.ACTIVE
        self.confirmed_at: Optional[datetime] = None
        self.cancelled_at = cancelled_at
        self.last_error: Optional[str] = None
        self._persist = persist
        self._sleep = sleep
        self._clock = clock
        self._listeners: list[Callable[[CancellationWorkflow], None]] = []
        self._task: Optional[asyncio.Task[None]] = None

    def add_listener(self, listener: Callable[["CancellationWorkflow"], None]) -> None:
        """Register a callback invoked synchronously on every state change."""
        self._listeners.append(listener)

    def _set_state(self, state: CancellationState) -> None:
        self.state = state
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Cancellation listener failed for subscription %s", self.subscription_id
                )

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def confirm(self) -> None:
        """Enter ``processing`` and start the grace-period timer."""
        if self.state is not CancellationState.ACTIVE:
            raise CancellationConflictError(
                "Subscription is already cancelled"
                if self.state is CancellationState.CANCELLED
                else "Cancellation already in progress"
            )

        loop = asyncio.get_running_loop()
        self.confirmed_at = self._clock()
        self.last_error = None
        self._task = loop.create_task(
            self._complete(), name=f"cancel-subscription-{self.subscription_id}"
        )
        self._task.add_done_callback(self._on_task_done)
        self._set_state(CancellationState.PROCESSING)
        logger.info(
            "Cancellation of subscription %s confirmed; persisting in %ss",
            self.subscription_id,
            self.grace_seconds,
        )

    async def _complete(self) -> None:
        try:
            await self._sleep(self.grace_seconds)
            cancelled_at = self._clock()
            await self._persist(self.subscription_id, self.user_id, cancelled_at)
        except NotFoundError:
            # Deleted while processing; the user's intent is already met.
            logger.info(
                "Subscription %s was removed before its cancellation was persisted",
                self.subscription_id,
            )
            self.cancelled_at = None
            self._set_state(CancellationState.CANCELLED)
            return
        except Exception as exc:  # noqa: BLE001
            self.last_error = (
                exc.message if isinstance(exc, SubTrackerError) else "Failed to persist cancellation"
            )
            logger.error(
                "Persisting cancellation of subscription %s failed; reverting to active",
                self.subscription_id,
                exc_info=exc,
            )
            self._set_state(CancellationState.ACTIVE)
            return

        self.cancelled_at = cancelled_at
        self._set_state(CancellationState.CANCELLED)
        logger.info("Subscription %s cancelled at %s", self.subscription_id, cancelled_at.isoformat())

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        # also covers a timer cancelled before its first step
        if task.cancelled() and self.state is CancellationState.PROCESSING:
            logger.info("Cancellation timer for subscription %s aborted", self.subscription_id)
            self._set_state(CancellationState.ACTIVE)

    def abort(self) -> None:
        """Cancel the pending timer; nothing has been written yet if it is still sleeping."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Block until the timer task (if any) has finished."""
        if self._task is not None:
            await asyncio.wait([self._task])


class CancellationScheduler:
    """Issues confirmation tokens and owns the in-flight cancellation timers.

    At most one workflow per ``(user_id, subscription_id)`` is tracked; a
    confirmation token is single-use and only the most recently issued one
    for a subscription is accepted.
    """

    def __init__(
        self,
        database: Database,
        *,
        grace_seconds: float,
        secret_key: str,
        confirm_max_age: int = 300,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = utcnow,
    ) -> None:
        self.database = database
        self.grace_seconds = grace_seconds
        self.confirm_max_age = confirm_max_age
        self._sleep = sleep
        self._clock = clock
        self._serializer = URLSafeTimedSerializer(secret_key, salt="subscription-cancellation")
        self._pending: dict[tuple[int, int], str] = {}
        self._workflows: dict[tuple[int, int], CancellationWorkflow] = {}
        # confirmation time of finished cancellations, for the status view
        self._confirmed: dict[tuple[int, int], datetime] = {}

    def get(self, user_id: int, subscription_id: int) -> Optional[CancellationWorkflow]:
        return self._workflows.get((user_id, subscription_id))

    def state_of(self, subscription: Subscription) -> CancellationState:
        if subscription.cancelled_at is not None:
            return CancellationState.CANCELLED
        workflow = self.get(subscription.user_id, subscription.id)
        if workflow is not None and workflow.state is CancellationState.PROCESSING:
            return CancellationState.PROCESSING
        return CancellationState.ACTIVE

    @property
    def pending_count(self) -> int:
        return sum(1 for workflow in self._workflows.values() if workflow.in_flight)

    def is_processing(self, user_id: int, subscription_id: int) -> bool:
        workflow = self.get(user_id, subscription_id)
        return workflow is not None and workflow.state is CancellationState.PROCESSING

    def _ensure_active(self, subscription: Subscription) -> None:
        state = self.state_of(subscription)
        if state is CancellationState.CANCELLED:
            raise CancellationConflictError("Subscription is already cancelled")
        if state is CancellationState.PROCESSING:
            raise CancellationConflictError("Cancellation already in progress")

    def request_cancellation(self, subscription: Subscription) -> str:
        """First step: hand out the token the confirmation step must present."""
        self._ensure_active(subscription)
        nonce = secrets.token_urlsafe(12)
        key = (subscription.user_id, subscription.id)
        self._pending[key] = nonce
        return self._serializer.dumps({"uid": subscription.user_id, "sid": subscription.id, "n": nonce})

    def _consume_token(self, subscription: Subscription, token: str) -> None:
        try:
            data = self._serializer.loads(token, max_age=self.confirm_max_age)
        except SignatureExpired:
            raise ValidationError("Confirmation expired; request cancellation again") from None
        except BadSignature:
            raise ValidationError("Invalid confirmation token") from None

        key = (subscription.user_id, subscription.id)
        if (
            not isinstance(data, dict)
            or data.get("uid") != subscription.user_id
            or data.get("sid") != subscription.id
            or self._pending.get(key) != data.get("n")
        ):
            raise ValidationError("Invalid confirmation token")
        del self._pending[key]

    def confirm_cancellation(self, subscription: Subscription, token: str) -> CancellationWorkflow:
        """Second step: validate the token and start the grace-period timer."""
        self._ensure_active(subscription)
        self._consume_token(subscription, token)

        workflow = CancellationWorkflow(
            subscription.id,
            subscription.user_id,
            self._persist,
            grace_seconds=self.grace_seconds,
            sleep=self._sleep,
            clock=self._clock,
        )
        workflow.add_listener(self._release_finished)
        self._workflows[(subscription.user_id, subscription.id)] = workflow
        workflow.confirm()
        return workflow

    def _release_finished(self, workflow: CancellationWorkflow) -> None:
        """Stop tracking a workflow once nothing about it is left to report.

        Cancelled workflows leave their confirmation time behind. Aborted ones
        (active with no timer) are dropped. A failed one is kept so its
        ``last_error`` stays readable until the next attempt or a delete.
        """
        key = (workflow.user_id, workflow.subscription_id)
        if self._workflows.get(key) is not workflow:
            return
        if workflow.state is CancellationState.CANCELLED:
            if workflow.confirmed_at is not None:
                self._confirmed[key] = workflow.confirmed_at
            del self._workflows[key]
        elif workflow.state is CancellationState.ACTIVE and not workflow.in_flight:
            del self._workflows[key]

    def forget(self, user_id: int, subscription_id: int) -> None:
        """Drop everything held for a subscription that was deleted or rewritten directly."""
        key = (user_id, subscription_id)
        workflow = self._workflows.pop(key, None)
        if workflow is not None:
            workflow.abort()
        self._pending.pop(key, None)
        self._confirmed.pop(key, None)

    @property
    def tracked_count(self) -> int:
        return len(self._workflows) + len(self._pending) + len(self._confirmed)

    async def _persist(self, subscription_id: int, user_id: int, cancelled_at: datetime) -> None:
        async with self.database.session() as session:
            await SubscriptionStore(session).set_cancellation(subscription_id, user_id, cancelled_at)

    def status(self, subscription: Subscription) -> dict:
        key = (subscription.user_id, subscription.id)
        workflow = self._workflows.get(key)
        if workflow is not None:
            confirmed_at = workflow.confirmed_at
        elif subscription.cancelled_at is not None:
            confirmed_at = self._confirmed.get(key)
        else:
            confirmed_at = None
        return {
            "subscription_id": subscription.id,
            "state": self.state_of(subscription).value,
            "confirmed_at": confirmed_at,
            "cancelled_at": subscription.cancelled_at,
            "last_error": workflow.last_error if workflow else None,
        }

    async def shutdown(self) -> None:
        """Abort every pending timer; unpersisted cancellations are dropped."""
        workflows = list(self._workflows.values())
        for workflow in workflows:
            workflow.abort()
        for workflow in workflows:
            await workflow.wait()
        self._workflows.clear()
        self._pending.clear()
        self._confirmed.clear()
