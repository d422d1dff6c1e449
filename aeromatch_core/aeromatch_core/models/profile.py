"""Marketplace roles and the technician profile model.

Rows loaded from the datastore are converted into these models at the
service boundary so that every optional attribute is explicit and the
domain functions never deal with half-populated records.
"""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """The side of the marketplace a user belongs to."""

    TECHNICIAN = "technician"
    COMPANY = "company"


class TechnicianProfile(BaseModel):
    """Capabilities and eligibility flags of a maintenance technician."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(..., description="Identity reference issued by the auth provider.")
    license_category: list[str] = Field(
        default_factory=list,
        description="Licence categories held (e.g. B1, B2, C).",
    )
    aircraft_types: list[str] = Field(
        default_factory=list,
        description="Aircraft types the technician is rated on.",
    )
    specialties: list[str] = Field(
        default_factory=list,
        description="Free-form specialty tags (avionics, structures, ...).",
    )
    languages: list[str] = Field(default_factory=list)
    own_tools: bool = False
    right_to_work_uk: bool = False
    uk_license: bool = False
    driving_license: bool = False
    is_available: bool = True
    visibility_anonymous: bool = True
    passport_expiry: date | None = None
    min_daily_rate_eur: float | None = None
    average_rating: float | None = None

