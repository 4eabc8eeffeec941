"""
Lecture des événements Stripe vérifiés.

`BillingEvent` ne garde que ce dont le projecteur a besoin : identifiant,
type, date de création (qui sert d'horloge à toutes les écritures) et objet.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from devisfacture.billing.constants import PREMIUM_METADATA_FLAG
from devisfacture.core.utils import from_timestamp, utcnow


@dataclass(frozen=True)
class BillingEvent:
    id: str
    type: str
    created: datetime
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "BillingEvent":
        data = (payload.get("data") or {}).get("object") or {}
        return cls(
            id=str(payload.get("id") or ""),
            type=str(payload.get("type") or ""),
            created=from_timestamp(payload.get("created")) or utcnow(),
            data=dict(data),
        )

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.data.get("metadata") or {}

    @property
    def is_premium(self) -> bool:
        return str(self.metadata.get(PREMIUM_METADATA_FLAG, "")).lower() == "true"

    @property
    def customer_id(self) -> Optional[str]:
        return _as_id(self.data.get("customer"))

    @property
    def subscription_id(self) -> Optional[str]:
        """Abonnement concerné : champ `subscription` d'une session/facture, ou l'objet lui-même."""
        if self.data.get("object") == "subscription":
            return _as_id(self.data.get("id"))
        return _as_id(self.data.get("subscription"))

    def period_bound(self, name: str) -> Optional[datetime]:
        """`current_period_start` / `current_period_end` de l'abonnement (ou de son premier élément)."""
        value = self.data.get(name)
        if value is None:
            items = (self.data.get("items") or {}).get("data") or []
            if items:
                value = items[0].get(name)
        return from_timestamp(value)


def _as_id(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dict):
        return value.get("id")
    return str(value)
