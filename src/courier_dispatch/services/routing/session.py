"""Multi-order planning session.

A session walks an operator from picking a store to a confirmed batch of
orders::

    idle -> store_selected -> destinations_selected -> routes_computed
         -> awaiting_confirmation -> confirmed | cancelled

``routes_computed`` re-enters itself whenever the plan is recomputed or a
stop is moved.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Sequence

from ...models.domain import Destination, Driver, PriorOrder, ReturnOption, Store
from ...persistence.preferences import LAST_STORE_KEY, PreferencesStore
from ..orders.records import build_assignment_notifications, build_order_records, generate_batch_id
from .distance_client import DistanceOracle
from .models import RoutePlan, ScheduleEstimate
from .schedule import estimate_schedule
from .sequencer import move_leg_down, move_leg_up, sequence_route

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    STORE_SELECTED = "store_selected"
    DESTINATIONS_SELECTED = "destinations_selected"
    ROUTES_COMPUTED = "routes_computed"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({SessionState.CONFIRMED, SessionState.CANCELLED})


class SessionStateError(ValueError):
    """The requested operation is not allowed in the session's current state."""


class SessionBusyError(RuntimeError):
    """Another request is already working on this session."""


@dataclass(slots=True)
class ConfirmationResult:
    batch_id: str
    orders: list[dict]
    notifications: list[dict]


OrdersWriter = Callable[[Sequence[dict]], list[dict]]
NotificationsWriter = Callable[[Sequence[dict]], list[dict]]


class PlanningSession:
    def __init__(
        self,
        oracle: DistanceOracle,
        preferences: PreferencesStore,
        *,
        session_id: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.oracle = oracle
        self.preferences = preferences
        self.clock = clock
        self.state = SessionState.IDLE
        self.last_store_id: str | None = preferences.get(LAST_STORE_KEY)

        self.store: Store | None = None
        self.driver: Driver | None = None
        self.prior_order: PriorOrder | None = None
        self.destinations: list[Destination] = []
        self.plan: RoutePlan | None = None
        self.schedule: list[ScheduleEstimate] = []
        self.batch_id: str | None = None
        self.last_touched: float | None = None
        self._busy = threading.Lock()

    # -- helpers --------------------------------------------------------------

    def _require(self, *states: SessionState) -> None:
        if self.state not in states:
            allowed = ", ".join(state.value for state in states)
            raise SessionStateError(f"Session is '{self.state.value}'; expected one of: {allowed}.")

    def _require_open(self) -> None:
        if self.state in TERMINAL_STATES:
            raise SessionStateError(f"Session is already {self.state.value}.")

    def _now(self) -> datetime | None:
        return self.clock() if self.clock else None

    def _reschedule(self) -> None:
        self.schedule = estimate_schedule(self.plan, self.prior_order, now=self._now())

    def _discard_plan(self) -> None:
        self.plan = None
        self.schedule = []

    # -- selection ------------------------------------------------------------

    def select_store(self, store: Store) -> None:
        self._require(SessionState.IDLE, SessionState.STORE_SELECTED, SessionState.DESTINATIONS_SELECTED)
        if not store.address or not store.address.strip():
            raise ValueError(f"Store '{store.name}' has no address.")
        self.store = store
        self._discard_plan()
        self.preferences.set(LAST_STORE_KEY, store.store_id)
        self.last_store_id = store.store_id
        if self.state is SessionState.IDLE:
            self.state = SessionState.STORE_SELECTED

    def select_driver(self, driver: Driver, prior_order: PriorOrder | None = None) -> None:
        self._require(
            SessionState.IDLE,
            SessionState.STORE_SELECTED,
            SessionState.DESTINATIONS_SELECTED,
            SessionState.ROUTES_COMPUTED,
        )
        self.driver = driver
        self.prior_order = prior_order
        if self.plan is not None:
            self._reschedule()

    def select_destinations(self, destinations: Sequence[Destination]) -> None:
        self._require(SessionState.STORE_SELECTED, SessionState.DESTINATIONS_SELECTED)
        if not destinations:
            raise ValueError("Select at least one customer.")
        seen: set[str] = set()
        for destination in destinations:
            if not destination.address or not destination.address.strip():
                raise ValueError(f"Customer '{destination.name}' has no selected address.")
            if destination.customer_id in seen:
                raise ValueError(f"Customer '{destination.name}' was selected twice.")
            seen.add(destination.customer_id)
        self.destinations = list(destinations)
        self.state = SessionState.DESTINATIONS_SELECTED

    # -- planning -------------------------------------------------------------

    def compute_routes(
        self,
        return_option: ReturnOption = ReturnOption.NONE,
        active_stores: Sequence[Store] = (),
    ) -> RoutePlan | None:
        """Sequence the selected stops. Returns None while another computation is running."""
        if not self._busy.acquire(blocking=False):
            logger.info(f"Session {self.session_id}: route calculation already in progress")
            return None
        try:
            self._require(SessionState.DESTINATIONS_SELECTED, SessionState.ROUTES_COMPUTED)
            plan = sequence_route(
                self.store,
                self.destinations,
                self.oracle,
                return_option=return_option,
                active_stores=active_stores,
            )
            self.plan = plan
            self._reschedule()
            self.state = SessionState.ROUTES_COMPUTED
            return plan
        finally:
            self._busy.release()

    def move_up(self, index: int) -> RoutePlan:
        self._require(SessionState.ROUTES_COMPUTED)
        move_leg_up(self.plan, index)
        self._reschedule()
        return self.plan

    def move_down(self, index: int) -> RoutePlan:
        self._require(SessionState.ROUTES_COMPUTED)
        move_leg_down(self.plan, index)
        self._reschedule()
        return self.plan

    def request_confirmation(self) -> RoutePlan:
        self._require(SessionState.ROUTES_COMPUTED)
        if self.driver is None:
            raise ValueError("Select a driver before confirming the route.")
        self.state = SessionState.AWAITING_CONFIRMATION
        return self.plan

    # -- completion -----------------------------------------------------------

    def confirm(
        self,
        orders_writer: OrdersWriter,
        notifications_writer: NotificationsWriter,
    ) -> ConfirmationResult:
        """Persist one order per leg and one notification per delivery.

        Orders are written first. A notification failure leaves the orders in
        place. Raises ``SessionBusyError`` while another request holds the
        session, so a repeated confirmation cannot write a second batch.
        """
        if not self._busy.acquire(blocking=False):
            raise SessionBusyError(f"Session {self.session_id} is already being processed.")
        try:
            self._require(SessionState.AWAITING_CONFIRMATION)
            batch_id = generate_batch_id()
            records = build_order_records(self.plan, self.schedule, driver=self.driver, batch_id=batch_id)
            inserted = orders_writer(records)

            notifications = build_assignment_notifications(
                self.plan, driver=self.driver, batch_id=batch_id, inserted_orders=inserted
            )
            notifications_writer(notifications)

            self.batch_id = batch_id
            self.state = SessionState.CONFIRMED
        finally:
            self._busy.release()

        logger.info(
            f"Session {self.session_id}: confirmed batch {batch_id} with {len(records)} orders "
            f"for driver {self.driver.full_name}"
        )
        return ConfirmationResult(batch_id=batch_id, orders=inserted or records, notifications=notifications)

    def cancel(self) -> None:
        self._require_open()
        self._discard_plan()
        self.destinations = []
        self.state = SessionState.CANCELLED


class SessionRegistry:
    """Planning sessions held in process memory.

    Sessions not looked up for ``idle_ttl`` are dropped the next time the
    registry is used.
    """

    def __init__(self, idle_ttl: timedelta | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._sessions: dict[str, PlanningSession] = {}
        self._lock = threading.Lock()
        self.idle_ttl = idle_ttl
        self.clock = clock

    def _evict_idle(self, now: float) -> None:
        if self.idle_ttl is None:
            return
        cutoff = now - self.idle_ttl.total_seconds()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.last_touched is not None and session.last_touched < cutoff
        ]
        for session_id in expired:
            del self._sessions[session_id]
        if expired:
            logger.info(f"Dropped {len(expired)} idle planning sessions")

    def add(self, session: PlanningSession) -> PlanningSession:
        with self._lock:
            now = self.clock()
            self._evict_idle(now)
            session.last_touched = now
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> PlanningSession:
        with self._lock:
            now = self.clock()
            self._evict_idle(now)
            try:
                session = self._sessions[session_id]
            except KeyError:
                raise KeyError(f"Planning session '{session_id}' not found.") from None
            session.last_touched = now
            return session

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
