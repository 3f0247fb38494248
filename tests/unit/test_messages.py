"""Testes de templates e catálogo de mensagens."""

from __future__ import annotations

from textarr.application.messages import (
    Messages,
    format_template,
    media_emoji,
    media_type_label,
)
from textarr.domain.enums import ConversationState, MediaType


def test_format_template_substitutes_values() -> None:
    assert format_template("{title} added ({year})", title="Dune", year=2021) == "Dune added (2021)"


def test_format_template_keeps_unknown_placeholders() -> None:
    assert format_template("Hi {name}, {missing}", name="Ana") == "Hi Ana, {missing}"


def test_media_helpers() -> None:
    assert media_emoji(MediaType.MOVIE) == "🎬"
    assert media_emoji(MediaType.TV_SHOW) == "📺"
    assert media_type_label(MediaType.MOVIE) == "Movie"
    assert media_type_label(MediaType.TV_SHOW) == "TV Show"


def test_messages_can_be_overridden() -> None:
    messages = Messages(cancelled="Bye!")
    assert messages.cancelled == "Bye!"
    assert messages.restart.startswith("Starting fresh")


def test_state_label_covers_every_state() -> None:
    messages = Messages()
    for state in ConversationState:
        assert messages.state_label(state)
    assert messages.state_label(ConversationState.IDLE) == "Ready for a new request"
