from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from devisfacture.core.types import UTCDateTime
from devisfacture.core.utils import as_utc, from_timestamp, utcnow
from devisfacture.subscriptions.models import MainPlan
from devisfacture.users.models import User

PARIS = timezone(timedelta(hours=2))


def test_utcnow_and_timestamps_are_timezone_aware():
    assert utcnow().tzinfo is timezone.utc
    assert from_timestamp(1767225600) == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert from_timestamp(None) is None


def test_as_utc_normalizes_values():
    assert as_utc(datetime(2026, 1, 1, 12, 0)) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert as_utc(datetime(2026, 1, 1, 14, 0, tzinfo=PARIS)).hour == 12
    assert as_utc(None) is None


def test_column_type_binds_utc():
    column_type = UTCDateTime()
    bound = column_type.process_bind_param(datetime(2026, 1, 1, 14, 0, tzinfo=PARIS), None)
    assert bound == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert bound.tzinfo is timezone.utc


@pytest.mark.asyncio
async def test_datetimes_reloaded_from_database_keep_utc(db_session: AsyncSession):
    user = User(email="horodatage@example.com", name="Horodatage", password_hash="x")
    db_session.add(user)
    await db_session.commit()
    period_end = datetime(2026, 2, 1, 9, 30, tzinfo=timezone.utc)
    db_session.add(MainPlan(user_id=user.id, status="active", current_period_end=period_end))
    await db_session.commit()

    db_session.expire_all()
    reloaded = (await db_session.execute(select(MainPlan).where(MainPlan.user_id == user.id))).scalars().first()

    assert reloaded.current_period_end == period_end
    assert reloaded.current_period_end.tzinfo is not None
    assert reloaded.created_at.tzinfo is not None
