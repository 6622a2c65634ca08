"""Multi-order planning endpoints."""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from fastapi import APIRouter, HTTPException, Path, status

from ...persistence.database import DatabaseNotConfiguredError, PersistenceError
from ...schemas.routing import (
    CalculateRoutesRequest,
    CalculateRoutesResponse,
    ComputeRoutesRequest,
    ConfirmationResponse,
    DestinationsSelection,
    DriverSelection,
    PlanningSessionResponse,
    StoreSelection,
)
from ...services.routing import service as routing_service
from ...services.routing.service import NotFoundError, session_to_response
from ...services.routing.session import SessionBusyError, SessionStateError

router = APIRouter(tags=["multi-orders"])

T = TypeVar("T")


def _run(action: str, func: Callable[..., T], *args) -> T:
    """Call into the planning service and translate its errors to HTTP responses."""
    try:
        return func(*args)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (SessionStateError, SessionBusyError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except DatabaseNotConfiguredError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except PersistenceError as exc:
        logging.error(f"Database error while trying to {action}: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error trying to {action}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {str(exc)}",
        ) from exc


@router.post("/calculate-routes", response_model=CalculateRoutesResponse, status_code=status.HTTP_200_OK)
def calculate_routes(payload: CalculateRoutesRequest) -> CalculateRoutesResponse:
    """Sequence addresses from the first origin without creating any orders."""
    return routing_service.calculate_routes(payload)


@router.post("/multi-orders/sessions", response_model=PlanningSessionResponse, status_code=status.HTTP_201_CREATED)
def create_session() -> PlanningSessionResponse:
    session = _run("start planning session", routing_service.start_session)
    return session_to_response(session)


@router.get("/multi-orders/sessions/{session_id}", response_model=PlanningSessionResponse)
def get_session(session_id: str) -> PlanningSessionResponse:
    return session_to_response(_run("load planning session", routing_service.get_session, session_id))


@router.post("/multi-orders/sessions/{session_id}/store", response_model=PlanningSessionResponse)
def select_store(session_id: str, payload: StoreSelection) -> PlanningSessionResponse:
    session = _run("select store", routing_service.select_store, session_id, payload.store_id)
    return session_to_response(session)


@router.post("/multi-orders/sessions/{session_id}/driver", response_model=PlanningSessionResponse)
def select_driver(session_id: str, payload: DriverSelection) -> PlanningSessionResponse:
    session = _run("select driver", routing_service.select_driver, session_id, payload.driver_id)
    return session_to_response(session)


@router.post("/multi-orders/sessions/{session_id}/customers", response_model=PlanningSessionResponse)
def select_customers(session_id: str, payload: DestinationsSelection) -> PlanningSessionResponse:
    session = _run("select customers", routing_service.select_customers, session_id, payload.customers)
    return session_to_response(session)


@router.post("/multi-orders/sessions/{session_id}/routes", response_model=PlanningSessionResponse)
def compute_routes(session_id: str, payload: ComputeRoutesRequest) -> PlanningSessionResponse:
    session = _run("calculate delivery routes", routing_service.compute_routes, session_id, payload.return_option)
    return session_to_response(session)


@router.post(
    "/multi-orders/sessions/{session_id}/legs/{index}/{direction}",
    response_model=PlanningSessionResponse,
)
def move_stop(
    session_id: str,
    index: int = Path(..., ge=0, description="Zero-based position of the delivery stop."),
    direction: str = Path(..., pattern="^(up|down)$"),
) -> PlanningSessionResponse:
    session = _run("reorder stops", routing_service.move_stop, session_id, index, direction)
    return session_to_response(session)


@router.post("/multi-orders/sessions/{session_id}/review", response_model=PlanningSessionResponse)
def review(session_id: str) -> PlanningSessionResponse:
    session = _run("review route", routing_service.request_confirmation, session_id)
    return session_to_response(session)


@router.post("/multi-orders/sessions/{session_id}/confirm", response_model=ConfirmationResponse)
def confirm(session_id: str) -> ConfirmationResponse:
    return _run("create orders", routing_service.confirm_session, session_id)


@router.delete("/multi-orders/sessions/{session_id}", response_model=PlanningSessionResponse)
def cancel(session_id: str) -> PlanningSessionResponse:
    session = _run("cancel planning session", routing_service.cancel_session, session_id)
    return session_to_response(session)
