"""Testes do identificador qualificado por plataforma."""

from __future__ import annotations

import pytest

from textarr.domain.identity import (
    MalformedIdentifier,
    Platform,
    build_user_id,
    mask_user_id,
    parse_user_id,
    platform_of,
)


class TestParseUserId:
    def test_parse_simple(self) -> None:
        parsed = parse_user_id("sms:+15551234567")
        assert parsed.platform is Platform.SMS
        assert parsed.raw_id == "+15551234567"

    def test_parse_splits_on_first_colon_only(self) -> None:
        """Raw id com `:` deve ser preservado inteiro."""
        parsed = parse_user_id("sms:+1:555")
        assert parsed == (Platform.SMS, "+1:555")

    def test_parse_without_separator_raises(self) -> None:
        with pytest.raises(MalformedIdentifier):
            parse_user_id("15551234567")

    def test_parse_unknown_platform_raises(self) -> None:
        with pytest.raises(MalformedIdentifier):
            parse_user_id("whatsapp:123")

    def test_parse_empty_raw_id_is_accepted(self) -> None:
        assert parse_user_id("discord:") == (Platform.DISCORD, "")

    def test_platform_of(self) -> None:
        assert platform_of("telegram:42") is Platform.TELEGRAM


class TestBuildUserId:
    @pytest.mark.parametrize(
        ("platform", "raw_id"),
        [
            (Platform.SMS, "+15551234567"),
            (Platform.DISCORD, "123456789012345678"),
            (Platform.SLACK, "U01:T02"),
            (Platform.TELEGRAM, "a:b:c"),
        ],
    )
    def test_round_trip(self, platform: Platform, raw_id: str) -> None:
        assert parse_user_id(build_user_id(platform, raw_id)) == (platform, raw_id)

    def test_build_accepts_string_platform(self) -> None:
        assert build_user_id("slack", "U1") == "slack:U1"

    def test_build_unknown_platform_raises(self) -> None:
        with pytest.raises(MalformedIdentifier):
            build_user_id("irc", "nick")


class TestMaskUserId:
    def test_mask_keeps_platform_and_tail(self) -> None:
        masked = mask_user_id("sms:+15551234567")
        assert masked == "sms:***4567"
        assert "555123" not in masked

    def test_mask_short_id_hides_everything(self) -> None:
        assert mask_user_id("discord:42") == "discord:***"

    def test_mask_never_raises_on_malformed(self) -> None:
        assert mask_user_id("15551234567") == "?:***4567"
