from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from devisfacture.billing.events import BillingEvent
from devisfacture.billing.projector import BillingEventProjector
from devisfacture.billing.repositories import SQLAlchemyProcessedEventRepository
from devisfacture.subscriptions.repositories import SQLAlchemySubscriptionRepository
from devisfacture.users.models import User

pytestmark = pytest.mark.asyncio

T1 = 1767225600  # 2026-01-01 00:00 UTC
T2 = T1 + 3600
T3 = T1 + 7200


def _event(event_id: str, event_type: str, obj: dict, created: int = T1) -> BillingEvent:
    return BillingEvent.from_payload({"id": event_id, "type": event_type, "created": created,
                                      "data": {"object": obj}})


@pytest.fixture
def projector(db_session: AsyncSession, mock_billing_gateway) -> BillingEventProjector:
    return BillingEventProjector(db=db_session, gateway=mock_billing_gateway)


@pytest.fixture
def subscriptions(db_session: AsyncSession) -> SQLAlchemySubscriptionRepository:
    return SQLAlchemySubscriptionRepository(db_session=db_session)


async def test_event_payload_parsing():
    event = _event("evt_1", "customer.subscription.updated", {
        "object": "subscription", "id": "sub_1", "customer": {"id": "cus_1"},
        "items": {"data": [{"current_period_end": T2}]},
        "metadata": {"is_premium": "True"},
    })
    assert event.created == datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
    assert event.subscription_id == "sub_1"
    assert event.customer_id == "cus_1"
    assert event.is_premium
    assert event.period_bound("current_period_end") == datetime(2026, 1, 1, 1, 0, 0, tzinfo=timezone.utc)
    assert event.period_bound("current_period_start") is None


async def test_checkout_completed_activates_main_plan(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, trial_user: User
):
    event = _event("evt_checkout", "checkout.session.completed", {
        "object": "checkout.session", "customer": "cus_new", "subscription": "sub_new",
        "metadata": {"user_id": str(trial_user.id), "plan": "annual"},
    })
    assert await projector.project(event) is True

    main_plan = await subscriptions.get_main_plan(trial_user.id)
    assert main_plan.status == "active"
    assert main_plan.plan == "annual"
    assert main_plan.stripe_customer_id == "cus_new"
    assert main_plan.stripe_subscription_id == "sub_new"
    assert main_plan.current_period_start == event.created
    assert main_plan.last_event_at == event.created


async def test_duplicate_event_is_applied_once(
    db_session: AsyncSession, projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository,
    trial_user: User
):
    event = _event("evt_dup", "checkout.session.completed", {
        "customer": "cus_dup", "subscription": "sub_dup", "metadata": {"user_id": str(trial_user.id)},
    })
    assert await projector.project(event) is True

    main_plan = await subscriptions.get_main_plan(trial_user.id)
    main_plan.status = "canceled"
    await db_session.commit()

    assert await projector.project(event) is False
    assert (await subscriptions.get_main_plan(trial_user.id)).status == "canceled"


async def test_older_event_does_not_overwrite_newer_state(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, active_user: User
):
    sub_id = f"sub_main_{active_user.id}"
    newer = _event("evt_new", "customer.subscription.updated", {
        "object": "subscription", "id": sub_id, "customer": f"cus_{active_user.id}", "status": "past_due",
        "current_period_end": T3,
    }, created=T2)
    older = _event("evt_old", "customer.subscription.updated", {
        "object": "subscription", "id": sub_id, "customer": f"cus_{active_user.id}", "status": "active",
        "current_period_end": T2,
    }, created=T1)

    await projector.project(newer)
    await projector.project(older)

    main_plan = await subscriptions.get_main_plan(active_user.id)
    assert main_plan.status == "expired"
    assert main_plan.last_event_at == newer.created


async def test_unknown_customer_is_acknowledged_and_recorded(
    db_session: AsyncSession, projector: BillingEventProjector
):
    event = _event("evt_orphan", "invoice.paid", {"object": "invoice", "customer": "cus_unknown"})
    assert await projector.project(event) is False
    assert await SQLAlchemyProcessedEventRepository(db_session).is_processed("evt_orphan")


async def test_user_resolved_from_customer_metadata(
    projector: BillingEventProjector, mock_billing_gateway, subscriptions: SQLAlchemySubscriptionRepository,
    trial_user: User
):
    mock_billing_gateway.customers["cus_meta"] = {"email": None, "metadata": {"user_id": str(trial_user.id)}}
    event = _event("evt_meta", "customer.subscription.created", {
        "object": "subscription", "id": "sub_meta", "customer": "cus_meta",
        "current_period_start": T1, "current_period_end": T3,
    })
    assert await projector.project(event) is True
    main_plan = await subscriptions.get_main_plan(trial_user.id)
    assert main_plan.status == "active"
    assert main_plan.stripe_subscription_id == "sub_meta"
    assert main_plan.current_period_end == datetime(2026, 1, 1, 2, 0, 0, tzinfo=timezone.utc)


async def test_premium_checkout_activates_option_only(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, active_user: User
):
    event = _event("evt_premium", "checkout.session.completed", {
        "customer": f"cus_{active_user.id}", "subscription": "sub_premium_new",
        "metadata": {"user_id": str(active_user.id), "is_premium": "true", "premium_plan": "monthly"},
    })
    assert await projector.project(event) is True

    premium = await subscriptions.get_premium_option(active_user.id)
    assert premium.active is True
    assert premium.plan == "monthly"
    assert premium.stripe_subscription_id == "sub_premium_new"
    main_plan = await subscriptions.get_main_plan(active_user.id)
    assert main_plan.stripe_subscription_id == f"sub_main_{active_user.id}"


async def test_main_subscription_deleted_drops_premium(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, premium_user: User
):
    event = _event("evt_deleted", "customer.subscription.deleted", {
        "object": "subscription", "id": f"sub_main_{premium_user.id}", "customer": f"cus_{premium_user.id}",
    })
    assert await projector.project(event) is True

    main_plan = await subscriptions.get_main_plan(premium_user.id)
    premium = await subscriptions.get_premium_option(premium_user.id)
    assert main_plan.status == "canceled"
    assert main_plan.current_period_end == event.created
    assert premium.active is False


async def test_premium_subscription_deleted_keeps_main_plan(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, premium_user: User
):
    event = _event("evt_premium_deleted", "customer.subscription.deleted", {
        "object": "subscription", "id": f"sub_premium_{premium_user.id}", "customer": f"cus_{premium_user.id}",
    })
    assert await projector.project(event) is True

    premium = await subscriptions.get_premium_option(premium_user.id)
    assert premium.active is False
    assert premium.stripe_subscription_id is None
    assert (await subscriptions.get_main_plan(premium_user.id)).status == "active"


async def test_update_for_unknown_subscription_is_ignored(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, active_user: User
):
    event = _event("evt_foreign", "customer.subscription.updated", {
        "object": "subscription", "id": "sub_other", "customer": f"cus_{active_user.id}", "status": "canceled",
    })
    assert await projector.project(event) is False
    assert (await subscriptions.get_main_plan(active_user.id)).status == "active"


async def test_unhandled_event_type(projector: BillingEventProjector):
    event = _event("evt_misc", "charge.refunded", {"object": "charge"})
    assert await projector.project(event) is False


async def test_subscription_created_delivered_after_checkout_keeps_period_bounds(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, trial_user: User
):
    period_end = T1 + 30 * 24 * 3600
    checkout = _event("evt_co", "checkout.session.completed", {
        "customer": "cus_order", "subscription": "sub_order", "metadata": {"user_id": str(trial_user.id)},
    }, created=T1 + 5)
    created = _event("evt_created", "customer.subscription.created", {
        "object": "subscription", "id": "sub_order", "customer": "cus_order",
        "metadata": {"user_id": str(trial_user.id)},
        "current_period_start": T1, "current_period_end": period_end,
    }, created=T1)

    await projector.project(checkout)
    await projector.project(created)

    main_plan = await subscriptions.get_main_plan(trial_user.id)
    assert main_plan.status == "active"
    assert main_plan.current_period_start == checkout.created
    assert main_plan.current_period_end == datetime(2026, 1, 31, tzinfo=timezone.utc)
    # Le filigrane reste celui de l'événement le plus récent
    assert main_plan.last_event_at == checkout.created


async def test_older_event_for_another_subscription_fills_nothing(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, trial_user: User
):
    checkout = _event("evt_co2", "checkout.session.completed", {
        "customer": "cus_x", "subscription": "sub_current", "metadata": {"user_id": str(trial_user.id)},
    }, created=T2)
    stale = _event("evt_old_sub", "customer.subscription.created", {
        "object": "subscription", "id": "sub_previous", "customer": "cus_x",
        "metadata": {"user_id": str(trial_user.id)}, "current_period_end": T3,
    }, created=T1)

    await projector.project(checkout)
    await projector.project(stale)

    main_plan = await subscriptions.get_main_plan(trial_user.id)
    assert main_plan.stripe_subscription_id == "sub_current"
    assert main_plan.current_period_end is None


@pytest.mark.parametrize("stored_status", ["expired", "canceled"])
async def test_invoice_paid_recovers_main_plan(
    db_session: AsyncSession, projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository,
    active_user: User, stored_status: str
):
    main_plan = await subscriptions.get_main_plan(active_user.id)
    main_plan.status = stored_status
    await db_session.commit()

    event = _event("evt_paid", "invoice.paid", {
        "object": "invoice", "customer": f"cus_{active_user.id}", "subscription": f"sub_main_{active_user.id}",
    })
    assert await projector.project(event) is True

    main_plan = await subscriptions.get_main_plan(active_user.id)
    assert main_plan.status == "active"
    assert main_plan.last_event_at == event.created


@pytest.mark.parametrize("stripe_status,expected", [
    ("canceled", "canceled"),
    ("unpaid", "canceled"),
    ("past_due", "expired"),
    ("active", "active"),
    ("trialing", "active"),
    ("incomplete", "active"),
])
async def test_main_subscription_updated_maps_stripe_status(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, active_user: User,
    stripe_status: str, expected: str
):
    event = _event(f"evt_upd_{stripe_status}", "customer.subscription.updated", {
        "object": "subscription", "id": f"sub_main_{active_user.id}", "customer": f"cus_{active_user.id}",
        "status": stripe_status, "current_period_end": T3,
    })
    assert await projector.project(event) is True

    main_plan = await subscriptions.get_main_plan(active_user.id)
    assert main_plan.status == expected
    assert main_plan.current_period_end == datetime(2026, 1, 1, 2, 0, 0, tzinfo=timezone.utc)


async def test_premium_subscription_updated_sets_flag_and_period_end(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, premium_user: User
):
    event = _event("evt_premium_upd", "customer.subscription.updated", {
        "object": "subscription", "id": f"sub_premium_{premium_user.id}", "customer": f"cus_{premium_user.id}",
        "status": "past_due", "items": {"data": [{"current_period_end": T2}]},
    })
    assert await projector.project(event) is True

    premium = await subscriptions.get_premium_option(premium_user.id)
    assert premium.active is False
    assert premium.period_end == datetime(2026, 1, 1, 1, 0, 0, tzinfo=timezone.utc)
    # L'abonnement principal n'est pas concerné
    assert (await subscriptions.get_main_plan(premium_user.id)).status == "active"

    reactivated = _event("evt_premium_upd2", "customer.subscription.updated", {
        "object": "subscription", "id": f"sub_premium_{premium_user.id}", "customer": f"cus_{premium_user.id}",
        "status": "active", "current_period_end": T3,
    }, created=T2)
    assert await projector.project(reactivated) is True
    premium = await subscriptions.get_premium_option(premium_user.id)
    assert premium.active is True
    assert premium.period_end == datetime(2026, 1, 1, 2, 0, 0, tzinfo=timezone.utc)


async def test_subscription_updated_twice_leaves_state_unchanged(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, active_user: User
):
    obj = {
        "object": "subscription", "id": f"sub_main_{active_user.id}", "customer": f"cus_{active_user.id}",
        "status": "past_due", "current_period_end": T3,
    }

    def snapshot(plan):
        return (plan.status, plan.current_period_start, plan.current_period_end, plan.stripe_subscription_id,
                plan.last_event_at)

    await projector.project(_event("evt_same", "customer.subscription.updated", obj, created=T2))
    first = snapshot(await subscriptions.get_main_plan(active_user.id))

    # Même événement rejoué, puis même contenu sous un autre identifiant
    assert await projector.project(_event("evt_same", "customer.subscription.updated", obj, created=T2)) is False
    await projector.project(_event("evt_same_redelivered", "customer.subscription.updated", obj, created=T2))

    assert snapshot(await subscriptions.get_main_plan(active_user.id)) == first
    assert first[0] == "expired"


async def test_premium_subscription_created(
    projector: BillingEventProjector, subscriptions: SQLAlchemySubscriptionRepository, active_user: User
):
    event = _event("evt_premium_created", "customer.subscription.created", {
        "object": "subscription", "id": "sub_premium_created", "customer": f"cus_{active_user.id}",
        "metadata": {"user_id": str(active_user.id), "is_premium": "true"},
        "current_period_start": T1, "current_period_end": T1 + 30 * 24 * 3600,
    })
    assert await projector.project(event) is True

    premium = await subscriptions.get_premium_option(active_user.id)
    assert premium.active is True
    assert premium.stripe_subscription_id == "sub_premium_created"
    assert premium.period_start == event.created
    assert premium.period_end == event.created + timedelta(days=30)
    main_plan = await subscriptions.get_main_plan(active_user.id)
    assert main_plan.stripe_subscription_id == f"sub_main_{active_user.id}"
