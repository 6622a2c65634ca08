"""Driver, batch and notification endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...persistence import database
from ...persistence.database import DatabaseNotConfiguredError, PersistenceError
from ...schemas.batches import BatchDetailModel, BatchSummaryModel, DelayCheckResponse
from ...schemas.routing import DriverLoadModel
from ...services.batches.service import BatchSummary, summarize_batch
from ...services.notifications.delays import build_delay_notifications, find_delayed_orders

router = APIRouter(tags=["dispatch"])


def _database_error(action: str, exc: Exception) -> HTTPException:
    if isinstance(exc, DatabaseNotConfiguredError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    logging.error(f"Failed to {action}: {exc}")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to {action}: {str(exc)}")


def _summary_model(summary: BatchSummary) -> BatchSummaryModel:
    return BatchSummaryModel(
        batch_id=summary.batch_id,
        created_at=summary.created_at,
        orders_count=summary.orders_count,
        status=summary.status.value,
        completion_percentage=summary.completion_percentage,
        driver_id=summary.driver_id,
        driver_name=summary.driver_name,
        store_name=summary.store_name,
        map_url=summary.map_url,
    )


@router.get("/drivers/available", response_model=list[DriverLoadModel])
def available_drivers() -> list[DriverLoadModel]:
    """Active drivers, least loaded first."""
    try:
        drivers = database.get_available_drivers()
    except PersistenceError as exc:
        raise _database_error("load drivers", exc) from exc
    return [
        DriverLoadModel(
            driver_id=driver.driver_id,
            full_name=driver.full_name,
            email=driver.email,
            status=driver.status.value,
            active_order_count=driver.active_order_count,
        )
        for driver in drivers
    ]


@router.get("/batches", response_model=list[BatchSummaryModel])
def list_batches() -> list[BatchSummaryModel]:
    try:
        batch_ids = database.get_batch_ids()
        summaries = [summarize_batch(batch_id, database.get_batch_orders(batch_id)) for batch_id in batch_ids]
    except PersistenceError as exc:
        raise _database_error("load batches", exc) from exc
    return [_summary_model(summary) for summary in summaries if summary is not None]


@router.get("/batches/{batch_id}", response_model=BatchDetailModel)
def get_batch(batch_id: str) -> BatchDetailModel:
    try:
        orders = database.get_batch_orders(batch_id)
    except PersistenceError as exc:
        raise _database_error("load batch", exc) from exc
    summary = summarize_batch(batch_id, orders)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Batch '{batch_id}' not found")
    return BatchDetailModel(summary=_summary_model(summary), orders=orders)


@router.post("/notifications/delivery-delays", response_model=DelayCheckResponse)
def notify_delivery_delays() -> DelayCheckResponse:
    """Warn drivers about active orders that are past their estimated delivery time."""
    try:
        orders = database.get_active_orders()
        delayed = find_delayed_orders(orders)
        notifications = build_delay_notifications(delayed)
        database.insert_notifications(notifications)
    except PersistenceError as exc:
        raise _database_error("send delay notifications", exc) from exc

    if delayed:
        logging.info(f"Flagged {len(delayed)} delayed orders out of {len(orders)} active")
    return DelayCheckResponse(
        checked=len(orders),
        delayed=len(delayed),
        notifications_created=len(notifications),
    )
