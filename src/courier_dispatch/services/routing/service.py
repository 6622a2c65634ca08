"""Routing orchestration service."""

from __future__ import annotations

import logging
from datetime import timedelta
from functools import lru_cache
from typing import Sequence

from ...config import settings
from ...models.domain import Customer, Destination, DriverStatus, ReturnOption, Store
from ...persistence import database
from ...persistence.preferences import FilePreferences, PreferencesStore
from ...schemas.routing import (
    CalculatedLeg,
    CalculateRoutesRequest,
    CalculateRoutesResponse,
    ConfirmationResponse,
    CustomerSelection,
    PlanningSessionResponse,
    RouteLegModel,
)
from ..customers.addresses import choose_destination
from .distance_client import DistanceMatrixClient
from .models import RoutePlan, ScheduleEstimate
from .sequencer import RoutePlanningError, sequence_route
from .session import PlanningSession, SessionBusyError, SessionRegistry

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    pass


registry = SessionRegistry(idle_ttl=timedelta(minutes=settings.session_idle_ttl_minutes))


@lru_cache()
def get_preferences() -> PreferencesStore:
    return FilePreferences()


# ---------------------------------------------------------------------------
# Stateless sequencing
# ---------------------------------------------------------------------------

def calculate_routes(payload: CalculateRoutesRequest) -> CalculateRoutesResponse:
    """Sequence raw addresses from the first origin; failures are reported, not raised."""
    if not payload.origins or not payload.destinations:
        return CalculateRoutesResponse(success=False, error="Invalid origins or destinations")

    store = Store(store_id="origin", name="Origin", address=payload.origins[0])
    destinations = [
        Destination(
            customer=Customer(customer_id=f"stop-{index}", full_name=address),
            address=address,
        )
        for index, address in enumerate(payload.destinations, start=1)
    ]
    try:
        plan = sequence_route(store, destinations, DistanceMatrixClient())
    except (RoutePlanningError, ValueError) as exc:
        logger.warning(f"Route calculation failed: {exc}")
        return CalculateRoutesResponse(success=False, error=str(exc))

    return CalculateRoutesResponse(
        success=True,
        legs=[
            CalculatedLeg(
                origin=leg.origin,
                destination=leg.destination,
                distance=leg.distance_text,
                distanceValue=leg.distance_value,
                duration=leg.duration_text,
                durationValue=leg.duration_value,
            )
            for leg in plan.legs
        ],
    )


# ---------------------------------------------------------------------------
# Planning sessions
# ---------------------------------------------------------------------------

def _legs_to_models(plan: RoutePlan | None, schedule: Sequence[ScheduleEstimate]) -> list[RouteLegModel]:
    if plan is None:
        return []
    timing = {estimate.sequence_index: estimate for estimate in schedule}
    models = []
    for leg in plan.legs:
        estimate = timing.get(leg.sequence_index)
        models.append(
            RouteLegModel(
                sequence_index=leg.sequence_index,
                kind=leg.kind.value,
                origin=leg.origin,
                destination=leg.destination,
                distance=leg.distance_text,
                distance_value=leg.distance_value,
                duration=leg.duration_text,
                duration_value=leg.duration_value,
                customer_id=leg.stop.customer_id if leg.stop else None,
                customer_name=leg.stop.name if leg.stop else None,
                return_store_id=leg.return_store.store_id if leg.return_store else None,
                return_store_name=leg.return_store.name if leg.return_store else None,
                fallback=leg.fallback,
                started_at=estimate.started_at if estimate else None,
                estimated_arrival=estimate.estimated_arrival if estimate else None,
            )
        )
    return models


def session_to_response(session: PlanningSession) -> PlanningSessionResponse:
    return PlanningSessionResponse(
        session_id=session.session_id,
        state=session.state.value,
        last_store_id=session.last_store_id,
        store_id=session.store.store_id if session.store else None,
        driver_id=session.driver.driver_id if session.driver else None,
        customer_ids=[destination.customer_id for destination in session.destinations],
        return_option=session.plan.return_option if session.plan else None,
        schedule_source=session.schedule[0].source.value if session.schedule else None,
        legs=_legs_to_models(session.plan, session.schedule),
        batch_id=session.batch_id,
    )


def start_session() -> PlanningSession:
    session = PlanningSession(DistanceMatrixClient(), get_preferences())
    registry.add(session)
    logger.info(f"Started planning session {session.session_id}")
    return session


def get_session(session_id: str) -> PlanningSession:
    try:
        return registry.get(session_id)
    except KeyError as exc:
        raise NotFoundError(str(exc.args[0])) from exc


def select_store(session_id: str, store_id: str) -> PlanningSession:
    session = get_session(session_id)
    store = database.get_store(store_id)
    if store is None:
        raise NotFoundError(f"Store '{store_id}' not found.")
    if not store.is_active:
        raise ValueError(f"Store '{store.name}' is not active.")
    session.select_store(store)
    return session


def select_driver(session_id: str, driver_id: str) -> PlanningSession:
    session = get_session(session_id)
    driver = database.get_driver(driver_id)
    if driver is None:
        raise NotFoundError(f"Driver '{driver_id}' not found.")
    if driver.status is DriverStatus.INACTIVE:
        raise ValueError(f"Driver '{driver.full_name}' is inactive.")
    prior_order = database.get_latest_driver_order(driver_id)
    session.select_driver(driver, prior_order)
    return session


def select_customers(session_id: str, selections: Sequence[CustomerSelection]) -> PlanningSession:
    session = get_session(session_id)
    customer_ids = [selection.customer_id for selection in selections]
    customers = {customer.customer_id: customer for customer in database.get_customers(customer_ids)}
    missing = [cid for cid in customer_ids if cid not in customers]
    if missing:
        raise NotFoundError(f"Customers not found: {', '.join(missing)}")
    destinations = [
        choose_destination(customers[selection.customer_id], selection.address_label)
        for selection in selections
    ]
    session.select_destinations(destinations)
    return session


def compute_routes(session_id: str, return_option: ReturnOption) -> PlanningSession:
    session = get_session(session_id)
    active_stores = database.get_active_stores() if return_option is ReturnOption.NEAREST else ()
    if session.compute_routes(return_option, active_stores) is None:
        raise SessionBusyError("Routes are already being calculated for this session.")
    return session


def move_stop(session_id: str, index: int, direction: str) -> PlanningSession:
    session = get_session(session_id)
    if direction == "up":
        session.move_up(index)
    elif direction == "down":
        session.move_down(index)
    else:
        raise ValueError(f"Unknown direction '{direction}'.")
    return session


def request_confirmation(session_id: str) -> PlanningSession:
    session = get_session(session_id)
    session.request_confirmation()
    return session


def confirm_session(session_id: str) -> ConfirmationResponse:
    session = get_session(session_id)
    result = session.confirm(database.insert_orders, database.insert_notifications)
    registry.discard(session_id)
    return ConfirmationResponse(
        session_id=session_id,
        batch_id=result.batch_id,
        orders_created=len(result.orders),
        notifications_created=len(result.notifications),
    )


def cancel_session(session_id: str) -> PlanningSession:
    session = get_session(session_id)
    session.cancel()
    registry.discard(session_id)
    return session
