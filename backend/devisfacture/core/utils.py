from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Datetime UTC avec fuseau, format de toutes les colonnes DateTime."""
    return datetime.now(timezone.utc)


def today() -> date:
    return utcnow().date()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Ramène un datetime en UTC ; une valeur sans fuseau est considérée comme UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_timestamp(ts: Optional[int]) -> Optional[datetime]:
    """Convertit un timestamp Unix (format Stripe) en datetime UTC."""
    if ts is None:
        return None
    return datetime.fromtimestamp(int(ts), tz=timezone.utc)
