from unittest.mock import MagicMock

import pytest
from aiogram.exceptions import TelegramBadRequest
from sqlalchemy import func, select

from healthlab.core.db.models import Subscription, User
from healthlab.core.texts import t
from healthlab.main import create_app
from tests.conftest import checkout_completed, make_event, sign


@pytest.fixture
async def client(aiohttp_client, settings, bot, session_maker):
    app = create_app(settings, bot, None, session_maker)
    return await aiohttp_client(app)


async def post_event(client, payload: bytes, signature: str | None = "auto"):
    headers = {"Content-Type": "application/json"}
    if signature == "auto":
        signature = sign(payload)
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return await client.post("/stripe/webhook", data=payload, headers=headers)


async def count(session_maker, model) -> int:
    async with session_maker() as session:
        return await session.scalar(select(func.count()).select_from(model))


async def test_redelivered_checkout_leaves_one_active_row(client, session_maker):
    payload = make_event("checkout.session.completed", checkout_completed())

    for _ in range(2):
        resp = await post_event(client, payload)
        assert resp.status == 200
        assert await resp.json() == {"received": True}

    async with session_maker() as session:
        rows = (await session.execute(select(Subscription))).scalars().all()
    assert len(rows) == 1
    assert rows[0].status == "active"


async def test_invalid_signature_rejected_without_mutation(client, session_maker, bot):
    payload = make_event("checkout.session.completed", checkout_completed())

    resp = await post_event(client, payload, signature=sign(payload, secret="whsec_wrong"))

    assert resp.status == 400
    assert await count(session_maker, User) == 0
    assert await count(session_maker, Subscription) == 0
    bot.send_message.assert_not_called()


async def test_missing_signature_rejected(client, session_maker):
    payload = make_event("checkout.session.completed", checkout_completed())

    resp = await post_event(client, payload, signature=None)

    assert resp.status == 400
    assert await count(session_maker, Subscription) == 0


async def test_tampered_body_rejected(client, session_maker):
    payload = make_event("checkout.session.completed", checkout_completed())
    signature = sign(payload)
    tampered = make_event("checkout.session.completed", checkout_completed(telegram_id="777"))

    resp = await post_event(client, tampered, signature=signature)

    assert resp.status == 400
    assert await count(session_maker, Subscription) == 0


async def test_update_for_unknown_subscription_is_acknowledged(client, session_maker, bot):
    payload = make_event("customer.subscription.updated", {"id": "sub_unknown", "status": "active"})

    resp = await post_event(client, payload)

    assert resp.status == 200
    assert await count(session_maker, Subscription) == 0
    bot.send_message.assert_not_called()


async def test_unrecognized_event_acknowledged(client):
    resp = await post_event(client, make_event("invoice.paid", {"id": "in_1"}))
    assert resp.status == 200


async def test_malformed_checkout_dropped(client, session_maker):
    obj = {**checkout_completed(), "client_reference_id": None}

    resp = await post_event(client, make_event("checkout.session.completed", obj))

    assert resp.status == 200
    assert await count(session_maker, Subscription) == 0


async def test_signed_garbage_body_dropped(client):
    payload = b"not json at all"
    resp = await post_event(client, payload)
    assert resp.status == 200


async def test_activation_notifies_with_invite_links(client, bot, settings):
    await post_event(client, make_event("checkout.session.completed", checkout_completed()))

    assert bot.create_chat_invite_link.await_count == 2
    called_chats = {c.kwargs["chat_id"] for c in bot.create_chat_invite_link.await_args_list}
    assert called_chats == {settings.CHANNEL_ID, settings.GROUP_ID}

    bot.send_message.assert_awaited_once()
    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == 42
    # язык не выбран -> язык по умолчанию
    assert kwargs["text"] == t(None, "activated")
    urls = [row[0].url for row in kwargs["reply_markup"].inline_keyboard]
    assert len(urls) == 2


async def test_deletion_revokes_access(client, bot, session_maker, settings):
    await post_event(client, make_event("checkout.session.completed", checkout_completed()))
    bot.reset_mock()

    resp = await post_event(client, make_event("customer.subscription.deleted", {"id": "sub_1", "status": "canceled"}))

    assert resp.status == 200
    async with session_maker() as session:
        assert (await session.scalar(select(Subscription))).status == "canceled"

    banned = {c.kwargs["chat_id"] for c in bot.ban_chat_member.await_args_list}
    assert banned == {settings.CHANNEL_ID, settings.GROUP_ID}
    assert bot.send_message.await_args.kwargs["text"] == t(None, "ended")


async def test_past_due_warns_user(client, bot):
    await post_event(client, make_event("checkout.session.completed", checkout_completed()))
    bot.reset_mock()

    await post_event(client, make_event("customer.subscription.updated", {"id": "sub_1", "status": "past_due"}))

    bot.ban_chat_member.assert_not_called()
    assert bot.send_message.await_args.kwargs["text"] == t(None, "payment_problem", status="past_due")


async def test_same_status_update_is_silent(client, bot):
    await post_event(client, make_event("checkout.session.completed", checkout_completed()))
    bot.reset_mock()

    await post_event(client, make_event("customer.subscription.updated", {"id": "sub_1", "status": "active"}))

    bot.send_message.assert_not_called()


async def test_notification_failure_does_not_fail_webhook(client, bot):
    bot.send_message.side_effect = RuntimeError("bot was blocked by the user")

    resp = await post_event(client, make_event("checkout.session.completed", checkout_completed()))

    assert resp.status == 200


async def test_redirect_pages(client):
    for path in ("/success", "/cancel"):
        resp = await client.get(path)
        assert resp.status == 200
        assert resp.content_type == "text/html"

    resp = await client.get("/health")
    assert await resp.text() == "ok"


async def test_signed_event_with_non_dict_data_dropped(client, session_maker):
    payload = b'{"id": "evt_1", "type": "checkout.session.completed", "data": "oops"}'

    resp = await post_event(client, payload)

    assert resp.status == 200
    assert await count(session_maker, Subscription) == 0


async def test_reference_beyond_bigint_dropped(client, session_maker, bot):
    payload = make_event("checkout.session.completed", checkout_completed(telegram_id="99999999999999999999"))

    resp = await post_event(client, payload)

    assert resp.status == 200
    assert await count(session_maker, User) == 0
    bot.send_message.assert_not_called()


async def test_redelivered_checkout_does_not_reissue_links(client, bot):
    payload = make_event("checkout.session.completed", checkout_completed())
    await post_event(client, payload)
    bot.reset_mock()

    resp = await post_event(client, payload)

    assert resp.status == 200
    bot.create_chat_invite_link.assert_not_called()
    bot.send_message.assert_not_called()


async def test_activation_without_links_sends_plain_message(client, bot):
    bot.create_chat_invite_link.side_effect = TelegramBadRequest(method=MagicMock(), message="not enough rights")

    await post_event(client, make_event("checkout.session.completed", checkout_completed()))

    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["text"] == t(None, "access_no_links")
    assert kwargs["reply_markup"] is None


async def test_reactivation_after_past_due_sends_links(client, bot, session_maker):
    await post_event(client, make_event("checkout.session.completed", checkout_completed()))
    await post_event(client, make_event("customer.subscription.updated", {"id": "sub_1", "status": "past_due"}))
    bot.reset_mock()

    resp = await post_event(client, make_event("customer.subscription.updated", {"id": "sub_1", "status": "active"}))

    assert resp.status == 200
    async with session_maker() as session:
        assert (await session.scalar(select(Subscription))).status == "active"
    assert bot.create_chat_invite_link.await_count == 2
    kwargs = bot.send_message.await_args.kwargs
    assert kwargs["text"] == t(None, "reactivated")
    assert len(kwargs["reply_markup"].inline_keyboard) == 2
