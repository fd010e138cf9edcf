"""Dependency injection for FastAPI endpoints"""

from datetime import date
from fastapi import Request
from billflow.infrastructure.cache import QueryCache
from billflow.utils.date_utils import today_utc


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_today() -> date:
    """Injected clock; tests override this to pin the run date"""
    return today_utc()


def get_balance_cache(request: Request) -> QueryCache:
    """Balance cache owned by the application instance"""
    return request.app.state.balance_cache
