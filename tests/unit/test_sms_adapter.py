"""Testes do adapter SMS (form do Twilio, habilitação e envio)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from textarr.domain.models import MessageResponse
from textarr.messaging.sms import SmsAdapter, filter_media_urls

USER = "sms:+15551234567"

CREDENTIALS = {
    "sms_enabled": True,
    "twilio_account_sid": "AC123",
    "twilio_auth_token": "token",
    "twilio_phone_number": "+15550000000",
}


def test_filter_media_urls() -> None:
    urls = ["https://img/1.jpg", "", "ftp://nope", "http://img/2.jpg"]
    assert filter_media_urls(urls) == ["https://img/1.jpg", "http://img/2.jpg"]
    assert filter_media_urls(None) == []
    assert len(filter_media_urls([f"https://img/{i}.jpg" for i in range(15)])) == 10


def test_enabled_requires_flag_and_credentials(settings_factory) -> None:
    assert SmsAdapter(settings_factory(**CREDENTIALS)).is_enabled is True
    assert SmsAdapter(settings_factory(sms_enabled=True)).is_enabled is False
    assert SmsAdapter(settings_factory(**{**CREDENTIALS, "sms_enabled": False})).is_enabled is False


def test_build_form_text_only(settings_factory) -> None:
    adapter = SmsAdapter(settings_factory(**CREDENTIALS))
    form = adapter.build_form(USER, MessageResponse(text="hi", media_urls=["https://p.jpg"]))
    assert form == {"From": "+15550000000", "To": "+15551234567", "Body": "hi"}


def test_build_form_with_media(settings_factory) -> None:
    adapter = SmsAdapter(settings_factory(**CREDENTIALS, sms_send_media=True))
    form = adapter.build_form(USER, MessageResponse(text="hi", media_urls=["https://p.jpg"]))
    assert form["MediaUrl"] == ["https://p.jpg"]


@pytest.mark.asyncio
async def test_send_message_posts_form(settings_factory) -> None:
    http_client = MagicMock()
    http_client.post = AsyncMock(return_value=MagicMock(status_code=201))
    http_client.close = AsyncMock()
    settings = settings_factory(**CREDENTIALS)
    adapter = SmsAdapter(settings, http_client=http_client)

    await adapter.send_message(USER, MessageResponse(text="ready!"))

    http_client.post.assert_awaited_once_with(
        settings.twilio_messages_endpoint,
        data={"From": "+15550000000", "To": "+15551234567", "Body": "ready!"},
    )

    await adapter.stop()
    http_client.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_send_message_without_start_creates_client(settings_factory) -> None:
    http_client = MagicMock()
    http_client.post = AsyncMock(return_value=MagicMock(status_code=201))
    http_client.close = AsyncMock()
    adapter = SmsAdapter(settings_factory(**CREDENTIALS))

    with patch(
        "textarr.messaging.sms.create_http_client", return_value=http_client
    ) as factory:
        await adapter.send_message(USER, MessageResponse(text="ready!"))
        await adapter.send_message(USER, MessageResponse(text="again"))

    factory.assert_called_once()
    assert http_client.post.await_count == 2
