from datetime import datetime
from typing import Optional

from pydantic import BaseModel
from sqlmodel import Field, SQLModel

from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import utcnow


class ProcessedBillingEvent(SQLModel, table=True):
    """Événements Stripe déjà projetés (dédoublonnage des renvois)."""
    __tablename__ = "processed_billing_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: str = Field(max_length=255, unique=True, index=True)
    event_type: str = Field(max_length=100)
    processed_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, nullable=False)


class CheckoutRequest(BaseModel):
    # Validé par le service pour renvoyer le message métier
    plan: Optional[str] = None


class PortalRequest(BaseModel):
    return_url: Optional[str] = None


class SessionUrlResponse(BaseModel):
    url: str


class WebhookAck(BaseModel):
    received: bool = True
