"""UK right-to-work match evaluation and umbrella/EoR partner suggestions.

A pairing is ``DIRECT`` unless the job is in the UK, requires right to
work there, and the candidate does not have it.  Those ``CONDITIONAL``
pairings can still proceed through an umbrella or Employer-of-Record
partner, so the evaluator also proposes partners.  Only partners that can
sponsor a UK visa are ever suggested; recommending a partner that cannot
solve the eligibility problem would be a dead end.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

UK_COUNTRY_CODE = "UK"

CONDITIONAL_LEGEND = "Requires Right to Work UK (visa/EOR option available)"

# Suggested partners are listed in this order; other eligible partners follow
# in registry order.
PARTNER_PRIORITY: tuple[str, ...] = ("deel", "remote", "oyster")

_EOR_COUNTRIES: tuple[str, ...] = (
    "UK", "ES", "FR", "DE", "IT", "PT", "NL", "BE", "IE", "CH",
    "PL", "CZ", "AT", "SE", "NO", "DK", "FI", "GR", "RO",
)  # fmt: skip


class MatchStatus(str, Enum):
    DIRECT = "DIRECT"
    CONDITIONAL = "CONDITIONAL"


class Candidate(BaseModel):
    has_right_to_work_uk: bool = False


class JobRequirements(BaseModel):
    country: str = Field(..., description="ISO-like country code of the work location.")
    requires_right_to_work: bool = False


class MatchEvaluation(BaseModel):
    status: MatchStatus
    legend: str = ""


class UmbrellaPartner(BaseModel):
    """An umbrella company or Employer-of-Record provider."""

    id: str
    name: str
    contact_email: str
    countries: tuple[str, ...]
    has_insurance_coverage: bool
    can_sponsor_visa_uk: bool
    website: str | None = None


UMBRELLA_PARTNERS: tuple[UmbrellaPartner, ...] = (
    UmbrellaPartner(
        id="deel",
        name="Deel",
        contact_email="support@deel.com",
        countries=_EOR_COUNTRIES,
        has_insurance_coverage=True,
        can_sponsor_visa_uk=True,
        website="https://www.deel.com",
    ),
    UmbrellaPartner(
        id="remote",
        name="Remote.com",
        contact_email="hello@remote.com",
        countries=_EOR_COUNTRIES,
        has_insurance_coverage=True,
        can_sponsor_visa_uk=True,
        website="https://www.remote.com",
    ),
    UmbrellaPartner(
        id="oyster",
        name="Oyster HR",
        contact_email="hello@oysterhr.com",
        countries=_EOR_COUNTRIES,
        has_insurance_coverage=True,
        can_sponsor_visa_uk=True,
        website="https://www.oysterhr.com",
    ),
    UmbrellaPartner(
        id="giant",
        name="Giant Group",
        contact_email="info@giantgroup.com",
        countries=("UK",),
        has_insurance_coverage=True,
        can_sponsor_visa_uk=False,
        website="https://www.giantgroup.com",
    ),
    UmbrellaPartner(
        id="umbrella_uk",
        name="Umbrella Company UK",
        contact_email="info@umbrellacompany.co.uk",
        countries=("UK",),
        has_insurance_coverage=True,
        can_sponsor_visa_uk=False,
        website="https://www.umbrellacompany.co.uk",
    ),
    UmbrellaPartner(
        id="parasol",
        name="Parasol Group",
        contact_email="enquiries@parasol.co.uk",
        countries=("UK",),
        has_insurance_coverage=True,
        can_sponsor_visa_uk=False,
        website="https://www.parasolgroup.co.uk",
    ),
    UmbrellaPartner(
        id="payfit",
        name="PayFit",
        contact_email="contact@payfit.com",
        countries=("UK", "ES", "FR", "DE"),
        has_insurance_coverage=False,
        can_sponsor_visa_uk=False,
        website="https://www.payfit.com",
    ),
    UmbrellaPartner(
        id="papaya",
        name="Papaya Global",
        contact_email="info@papayaglobal.com",
        countries=("UK", "ES", "FR", "DE", "IT", "NL", "IE"),
        has_insurance_coverage=True,
        can_sponsor_visa_uk=False,
        website="https://www.papayaglobal.com",
    ),
    UmbrellaPartner(
        id="velocity",
        name="Velocity Global",
        contact_email="info@velocityglobal.com",
        countries=("UK", "ES", "FR", "DE", "IT", "NL", "IE", "CH"),
        has_insurance_coverage=True,
        can_sponsor_visa_uk=False,
        website="https://www.velocityglobal.com",
    ),
)

_PARTNERS_BY_ID: dict[str, UmbrellaPartner] = {p.id: p for p in UMBRELLA_PARTNERS}


def evaluate_match_status(candidate: Candidate, job: JobRequirements) -> MatchEvaluation:
    """Classify a candidate/job pairing as ``DIRECT`` or ``CONDITIONAL``.

    Rules are evaluated top to bottom, first match wins:

    1. job outside the UK                         -> DIRECT
    2. UK job without a right-to-work requirement -> DIRECT
    3. UK job, required, candidate has it         -> DIRECT
    4. otherwise                                  -> CONDITIONAL
    """
    if job.country != UK_COUNTRY_CODE:
        return MatchEvaluation(status=MatchStatus.DIRECT)
    if not job.requires_right_to_work:
        return MatchEvaluation(status=MatchStatus.DIRECT)
    if candidate.has_right_to_work_uk:
        return MatchEvaluation(status=MatchStatus.DIRECT)
    return MatchEvaluation(status=MatchStatus.CONDITIONAL, legend=CONDITIONAL_LEGEND)


def _priority(partner: UmbrellaPartner) -> int:
    try:
        return PARTNER_PRIORITY.index(partner.id)
    except ValueError:
        return len(PARTNER_PRIORITY)


def get_suggested_partners(candidate: Candidate, job: JobRequirements) -> list[UmbrellaPartner]:
    """Return visa-sponsoring partners for a ``CONDITIONAL`` pairing.

    ``DIRECT`` pairings get an empty list.  Prioritised partners come first
    in :data:`PARTNER_PRIORITY` order; the sort is stable so any other
    sponsoring partner keeps its registry position.
    """
    if evaluate_match_status(candidate, job).status is MatchStatus.DIRECT:
        return []
    eligible = [p for p in UMBRELLA_PARTNERS if p.can_sponsor_visa_uk]
    return sorted(eligible, key=_priority)


def get_partners_for_country(country: str) -> list[UmbrellaPartner]:
    """Return every registry partner operating in *country*, in registry order."""
    code = country.strip().upper()
    return [p for p in UMBRELLA_PARTNERS if code in p.countries]


def get_partner(partner_id: str) -> UmbrellaPartner | None:
    """Look up a partner by id."""
    return _PARTNERS_BY_ID.get(partner_id)
