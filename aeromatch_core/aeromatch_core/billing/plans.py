"""Subscription plan catalog and processor price-id mapping.

Each plan belongs to one marketplace side and carries a price id per
processor environment.  Ids containing ``XXXX`` (sandbox) or ``YYYY``
(production) are placeholders for plans not yet configured in the
processor dashboard and must not be sent to checkout.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from aeromatch_core.models.billing import PlanInterval
from aeromatch_core.models.profile import Role

_SANDBOX_PLACEHOLDER = "pri_01XXXXXXXXXXXXXXXXXXXXXX"
_PRODUCTION_PLACEHOLDER = "pri_01YYYYYYYYYYYYYYYYYYYYYY"
_PLACEHOLDER_MARKERS: tuple[str, ...] = ("XXXX", "YYYY")


class ProcessorEnv(str, Enum):
    SANDBOX = "sandbox"
    PRODUCTION = "production"


class Plan(BaseModel):
    """A purchasable subscription plan."""

    key: str
    role: Role
    name: dict[str, str]
    description: dict[str, str]
    price_eur: float
    interval: PlanInterval
    features: dict[str, list[str]]
    sandbox_price_id: str
    production_price_id: str
    popular: bool = False

    def price_id(self, env: ProcessorEnv) -> str:
        return self.production_price_id if env is ProcessorEnv.PRODUCTION else self.sandbox_price_id


PLANS: tuple[Plan, ...] = (
    Plan(
        key="TECH_MONTHLY",
        role=Role.TECHNICIAN,
        name={"en": "Premium Monthly", "es": "Premium Mensual"},
        description={
            "en": "Full access to all premium features",
            "es": "Acceso completo a todas las funciones premium",
        },
        price_eur=3.99,
        interval=PlanInterval.MONTHLY,
        features={
            "en": [
                "Unlimited document verification",
                "Priority verification (24h)",
                "Advanced profile customization",
                '"Verified Premium" badge',
                "Priority support",
            ],
            "es": [
                "Verificación de documentos ilimitada",
                "Verificación prioritaria (24h)",
                "Personalización avanzada de perfil",
                'Badge "Verificado Premium"',
                "Soporte prioritario",
            ],
        },
        sandbox_price_id="pri_01kdp7a96zcn7ynzvmpj0720t0",
        production_price_id="pri_01kdp7a96zcn7ynzvmpj0720t0",
        popular=True,
    ),
    Plan(
        key="TECH_YEARLY",
        role=Role.TECHNICIAN,
        name={"en": "Premium Yearly", "es": "Premium Anual"},
        description={"en": "Save 20% with annual billing", "es": "Ahorra 20% con facturación anual"},
        price_eur=38.30,
        interval=PlanInterval.YEARLY,
        features={
            "en": ["Everything in monthly +", "2 months free", "Priority listing in searches"],
            "es": ["Todo lo del mensual +", "2 meses gratis", "Prioridad en búsquedas"],
        },
        sandbox_price_id=_SANDBOX_PLACEHOLDER,
        production_price_id=_PRODUCTION_PLACEHOLDER,
    ),
    Plan(
        key="COMP_STARTER",
        role=Role.COMPANY,
        name={"en": "Starter", "es": "Starter"},
        description={"en": "Perfect for small teams", "es": "Perfecto para equipos pequeños"},
        price_eur=49.99,
        interval=PlanInterval.MONTHLY,
        features={
            "en": ["Up to 5 contacts/month", "Basic search", "Basic company profile"],
            "es": ["Hasta 5 contactos/mes", "Búsqueda básica", "Perfil de empresa básico"],
        },
        sandbox_price_id=_SANDBOX_PLACEHOLDER,
        production_price_id=_PRODUCTION_PLACEHOLDER,
    ),
    Plan(
        key="COMP_PROFESSIONAL",
        role=Role.COMPANY,
        name={"en": "Professional", "es": "Professional"},
        description={
            "en": "Most popular for growing companies",
            "es": "El más popular para empresas en crecimiento",
        },
        price_eur=139.99,
        interval=PlanInterval.MONTHLY,
        features={
            "en": ["Up to 20 contacts/month", "Advanced filters", "Featured profile", "Priority support"],
            "es": ["Hasta 20 contactos/mes", "Filtros avanzados", "Perfil destacado", "Soporte prioritario"],
        },
        sandbox_price_id=_SANDBOX_PLACEHOLDER,
        production_price_id=_PRODUCTION_PLACEHOLDER,
        popular=True,
    ),
    Plan(
        key="COMP_ENTERPRISE",
        role=Role.COMPANY,
        name={"en": "Enterprise", "es": "Enterprise"},
        description={
            "en": "Unlimited access for large operations",
            "es": "Acceso ilimitado para grandes operaciones",
        },
        price_eur=199.99,
        interval=PlanInterval.MONTHLY,
        features={
            "en": ["Unlimited contacts", "API access", "Dedicated account manager", "Personalized onboarding"],
            "es": ["Contactos ilimitados", "Acceso API", "Gestor de cuenta dedicado", "Onboarding personalizado"],
        },
        sandbox_price_id=_SANDBOX_PLACEHOLDER,
        production_price_id=_PRODUCTION_PLACEHOLDER,
    ),
)

_PLANS_BY_KEY: dict[str, Plan] = {plan.key: plan for plan in PLANS}


def get_plan(key: str) -> Plan | None:
    return _PLANS_BY_KEY.get(key)


def plans_for_role(role: Role) -> list[Plan]:
    return [plan for plan in PLANS if plan.role is role]


def plan_for_price_id(price_id: str, env: ProcessorEnv) -> Plan | None:
    """Reverse lookup used when an event arrives without ``custom_data.plan_key``."""
    for plan in PLANS:
        if plan.price_id(env) == price_id and not is_placeholder_price(price_id):
            return plan
    return None


def is_placeholder_price(price_id: str) -> bool:
    return any(marker in price_id for marker in _PLACEHOLDER_MARKERS)


def format_price(price_eur: float, interval: PlanInterval, language: str = "en") -> str:
    """Render a price the way the pricing page shows it, e.g. ``€3,99/mo``."""
    formatted = f"{price_eur:.2f}".replace(".", ",")
    if interval is PlanInterval.MONTHLY:
        suffix = "/mes" if language == "es" else "/mo"
    else:
        suffix = "/año" if language == "es" else "/yr"
    return f"€{formatted}{suffix}"
