"""
Modèles de l'abonnement.

L'abonnement principal et l'option premium sont deux entités distinctes
rattachées au même utilisateur ; l'accès premium effectif est calculé par
`devisfacture.subscriptions.entitlements`.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from sqlmodel import Field, SQLModel

from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import utcnow
from devisfacture.subscriptions.constants import SubscriptionStatus


class MainPlan(SQLModel, table=True):
    """Abonnement principal (table `subscriptions`, une ligne par utilisateur)."""
    __tablename__ = "subscriptions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    status: str = Field(default=SubscriptionStatus.TRIAL.value, max_length=20)
    trial_start: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    trial_end: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    plan: Optional[str] = Field(default=None, max_length=20)
    current_period_start: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    current_period_end: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    stripe_customer_id: Optional[str] = Field(default=None, max_length=255, index=True)
    stripe_subscription_id: Optional[str] = Field(default=None, max_length=255, index=True)
    # Date du dernier événement Stripe appliqué
    last_event_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)


class PremiumOption(SQLModel, table=True):
    """Option premium (comptabilité + stocks), une ligne par utilisateur."""
    __tablename__ = "premium_options"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    active: bool = Field(default=False, nullable=False)
    plan: Optional[str] = Field(default=None, max_length=20)
    period_start: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    period_end: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    stripe_subscription_id: Optional[str] = Field(default=None, max_length=255, index=True)
    last_event_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)


class MainPlanRead(SQLModel):
    status: str
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    plan: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None


class PremiumOptionRead(SQLModel):
    active: bool
    plan: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None


class EntitlementRead(BaseModel):
    main_subscription_active: bool
    premium_active: bool
    is_premium: bool
    trial_active: bool
    has_access: bool


class SubscriptionOverview(BaseModel):
    main_plan: Optional[MainPlanRead] = None
    premium_option: Optional[PremiumOptionRead] = None
    entitlement: EntitlementRead
