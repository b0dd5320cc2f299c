"""Donation Platform - API Routers"""
from .closure import router as closure_router
from .scheduler import router as scheduler_router

__all__ = [
    "closure_router",
    "scheduler_router",
]
