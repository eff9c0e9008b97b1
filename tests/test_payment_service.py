from sqlalchemy import func, select

from healthlab.core.db.models import Subscription, User
from healthlab.core.services.payment_service import (
    ACTIVATED,
    DROPPED,
    IGNORED,
    STATUS_CHANGED,
    UNKNOWN,
    apply_event,
)
from tests.conftest import checkout_completed


def event(event_type: str, obj) -> dict:
    return {"id": "evt_1", "type": event_type, "data": {"object": obj}}


async def _apply(session, payload: dict):
    async with session.begin():
        return await apply_event(session, payload)


async def _count(session, model) -> int:
    return await session.scalar(select(func.count()).select_from(model))


async def test_checkout_completed_activates(session):
    outcome = await _apply(session, event("checkout.session.completed", checkout_completed()))

    assert outcome.action == ACTIVATED
    assert outcome.telegram_id == 42

    user = await session.scalar(select(User).where(User.telegram_id == 42))
    assert user.stripe_customer_id == "cus_1"
    sub = await session.scalar(select(Subscription))
    assert (sub.telegram_id, sub.stripe_subscription_id, sub.status) == (42, "sub_1", "active")


async def test_checkout_payment_mode_ignored(session):
    obj = {**checkout_completed(), "mode": "payment"}
    outcome = await _apply(session, event("checkout.session.completed", obj))

    assert outcome.action == IGNORED
    assert await _count(session, Subscription) == 0


async def test_checkout_without_reference_dropped(session):
    obj = {**checkout_completed(), "client_reference_id": None}
    outcome = await _apply(session, event("checkout.session.completed", obj))

    assert outcome.action == DROPPED
    assert await _count(session, User) == 0
    assert await _count(session, Subscription) == 0


async def test_checkout_with_garbage_reference_dropped(session):
    obj = checkout_completed(telegram_id="not-a-number")
    outcome = await _apply(session, event("checkout.session.completed", obj))

    assert outcome.action == DROPPED


async def test_event_without_object_dropped(session):
    outcome = await _apply(session, {"id": "evt_1", "type": "customer.subscription.updated"})
    assert outcome.action == DROPPED


async def test_unrecognized_type_ignored(session):
    outcome = await _apply(session, event("invoice.paid", {"id": "in_1"}))
    assert outcome.action == IGNORED


async def test_update_unknown_subscription(session):
    outcome = await _apply(session, event("customer.subscription.updated", {"id": "sub_x", "status": "past_due"}))

    assert outcome.action == UNKNOWN
    assert outcome.telegram_id is None
    assert await _count(session, Subscription) == 0


async def test_update_and_delete(session):
    await _apply(session, event("checkout.session.completed", checkout_completed()))

    outcome = await _apply(session, event("customer.subscription.updated", {"id": "sub_1", "status": "past_due"}))
    assert outcome.action == STATUS_CHANGED
    assert (outcome.previous_status, outcome.status) == ("active", "past_due")

    # deleted без статуса -> canceled
    outcome = await _apply(session, event("customer.subscription.deleted", {"id": "sub_1"}))
    assert outcome.status == "canceled"

    session.expire_all()
    sub = await session.scalar(select(Subscription))
    assert sub.status == "canceled"


async def test_update_without_status_dropped(session):
    await _apply(session, event("checkout.session.completed", checkout_completed()))
    outcome = await _apply(session, event("customer.subscription.updated", {"id": "sub_1"}))

    assert outcome.action == DROPPED
    session.expire_all()
    assert (await session.scalar(select(Subscription))).status == "active"


async def test_data_not_a_dict_dropped(session):
    outcome = await _apply(session, {"id": "evt_1", "type": "checkout.session.completed", "data": "oops"})

    assert outcome.action == DROPPED


async def test_reference_out_of_bigint_range_dropped(session):
    for ref in ("99999999999999999999", "-5", "0"):
        outcome = await _apply(session, event("checkout.session.completed", checkout_completed(telegram_id=ref)))
        assert outcome.action == DROPPED

    assert await _count(session, User) == 0


async def test_expanded_subscription_object_accepted(session):
    obj = {**checkout_completed(), "subscription": {"id": "sub_1", "object": "subscription"}}

    outcome = await _apply(session, event("checkout.session.completed", obj))

    assert outcome.action == ACTIVATED
    assert (await session.scalar(select(Subscription))).stripe_subscription_id == "sub_1"


async def test_redelivered_checkout_reports_previous_status(session):
    first = await _apply(session, event("checkout.session.completed", checkout_completed()))
    second = await _apply(session, event("checkout.session.completed", checkout_completed()))

    assert first.previous_status is None
    assert second.previous_status == "active"
