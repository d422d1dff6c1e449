"""API router modules for the AeroMatch marketplace."""

from __future__ import annotations

from api.routers import (
    admin,
    auth,
    availability,
    billing,
    documents,
    health,
    job_requests,
    matching,
    premium,
    profiles,
    ratings,
    search,
)

__all__ = [
    "admin",
    "auth",
    "availability",
    "billing",
    "documents",
    "health",
    "job_requests",
    "matching",
    "premium",
    "profiles",
    "ratings",
    "search",
]
