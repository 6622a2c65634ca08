"""Batch and notification schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class BatchSummaryModel(BaseModel):
    batch_id: str
    created_at: Optional[str] = None
    orders_count: int
    status: str
    completion_percentage: int
    driver_id: Optional[str] = None
    driver_name: Optional[str] = None
    store_name: Optional[str] = None
    map_url: Optional[str] = None


class BatchDetailModel(BaseModel):
    summary: BatchSummaryModel
    orders: List[dict]


class DelayCheckResponse(BaseModel):
    checked: int
    delayed: int
    notifications_created: int
