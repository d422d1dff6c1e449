"""State persistence layer using PostgreSQL (SQLite for local dev and tests)."""

from aeromatch_core.state.database import create_tables, get_engine, get_session, set_user_context
from aeromatch_core.state.repository import (
    AcceptanceWorkflowRepository,
    AvailabilityRepository,
    BillingCustomerRepository,
    BillingEventRepository,
    CompanyRepository,
    DocumentRepository,
    JobRequestRepository,
    PremiumGrantRepository,
    ProfileRepository,
    RatingRepository,
    SubscriptionRepository,
    TechnicianRepository,
)

__all__ = [
    "AcceptanceWorkflowRepository",
    "AvailabilityRepository",
    "BillingCustomerRepository",
    "BillingEventRepository",
    "CompanyRepository",
    "DocumentRepository",
    "JobRequestRepository",
    "PremiumGrantRepository",
    "ProfileRepository",
    "RatingRepository",
    "SubscriptionRepository",
    "TechnicianRepository",
    "create_tables",
    "get_engine",
    "get_session",
    "set_user_context",
]
