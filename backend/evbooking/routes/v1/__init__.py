# backend/evbooking/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
"""

from . import bookings, stations

__all__ = [
    "bookings",
    "stations",
]
