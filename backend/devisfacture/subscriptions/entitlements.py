"""
Calcul des droits d'accès à partir de l'abonnement et de l'heure courante.

Projection en lecture seule : aucune écriture, aucune exception. L'absence
d'enregistrement donne un accès entièrement fermé.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from devisfacture.core.utils import as_utc, utcnow
from devisfacture.subscriptions.constants import (
    PREMIUM_INACTIVE_MSG,
    PREMIUM_MAIN_INACTIVE_MSG,
    PREMIUM_REQUIRED_MSG,
    PREMIUM_TRIAL_MSG,
    SubscriptionStatus,
)


@dataclass(frozen=True)
class Entitlement:
    main_subscription_active: bool = False
    premium_active: bool = False
    is_premium: bool = False
    trial_active: bool = False
    # Abonnement principal actif ou essai en cours
    has_access: bool = False
    status: Optional[str] = None


NO_ENTITLEMENT = Entitlement()


def _not_expired(end: Optional[datetime], now: datetime) -> bool:
    end = as_utc(end)
    return end is None or end > now


def evaluate_entitlement(main_plan: Any, premium_option: Any = None, now: Optional[datetime] = None) -> Entitlement:
    """Calcule les droits effectifs.

    Args:
        main_plan: Abonnement principal (ou None).
        premium_option: Option premium (ou None).
        now: Instant d'évaluation (UTC), `utcnow()` par défaut.
    """
    if main_plan is None:
        return NO_ENTITLEMENT
    now = as_utc(now) if now is not None else utcnow()

    status = main_plan.status
    main_active = status == SubscriptionStatus.ACTIVE and _not_expired(main_plan.current_period_end, now)

    trial_end = as_utc(main_plan.trial_end)
    trial_active = status == SubscriptionStatus.TRIAL and trial_end is not None and trial_end > now

    # Le flag premium seul ne suffit pas : seul is_premium doit servir au contrôle d'accès
    premium_active = bool(
        premium_option is not None
        and premium_option.active
        and _not_expired(premium_option.period_end, now)
    )

    return Entitlement(
        main_subscription_active=main_active,
        premium_active=premium_active,
        is_premium=main_active and premium_active,
        trial_active=trial_active,
        has_access=main_active or trial_active,
        status=str(getattr(status, "value", status)),
    )


def premium_denial_reason(main_plan: Any, entitlement: Entitlement) -> Optional[str]:
    """Message expliquant pourquoi l'accès premium est refusé (None si accordé)."""
    if entitlement.is_premium:
        return None
    if main_plan is None:
        return PREMIUM_REQUIRED_MSG
    if main_plan.status == SubscriptionStatus.TRIAL:
        return PREMIUM_TRIAL_MSG
    if not entitlement.main_subscription_active:
        return PREMIUM_MAIN_INACTIVE_MSG
    return PREMIUM_INACTIVE_MSG
