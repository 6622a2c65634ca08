"""Batch summaries for orders created together."""

from .service import BatchSummary, batch_status, build_route_map_url, summarize_batch

__all__ = ["BatchSummary", "batch_status", "build_route_map_url", "summarize_batch"]
