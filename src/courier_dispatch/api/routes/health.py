"""Liveness and dependency checks."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings
from ...db.supabase import get_supabase_client
from ...persistence.database import PersistenceError, get_active_stores

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/distance", status_code=status.HTTP_200_OK)
def health_distance() -> dict:
    """Resolve one known pair of addresses through the Distance Matrix service."""
    if not settings.google_maps_api_key:
        return {"service": "distance-matrix", "configured": False, "healthy": False}

    # lazy import
    from ...services.routing.distance_client import check_health

    try:
        return {"service": "distance-matrix", "configured": True, "healthy": check_health()}
    except Exception as e:
        return {"service": "distance-matrix", "configured": True, "healthy": False, "error": str(e)}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Report whether stores can be read; planning needs at least one active store."""
    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set DISPATCH_SUPABASE_URL and DISPATCH_SUPABASE_KEY environment variables.",
            "active_stores": 0,
        }

    try:
        stores = get_active_stores(client=supabase)
    except PersistenceError as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
    return {
        "configured": True,
        "connected": True,
        "active_stores": len(stores),
        "message": f"Found {len(stores)} active stores." if stores else "Database connected but no store is active.",
    }
