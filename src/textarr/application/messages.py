"""Textos de resposta ao usuário e formatação de templates `{variavel}`."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel

from textarr.domain.enums import ConversationState

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

EMOJI: dict[str, str] = {
    "movie": "🎬",
    "tv_show": "📺",
    "check": "✓",
    "check_green": "✅",
    "warning": "⚠️",
    "cancel": "❌",
    "search": "🔍",
    "empty": "📭",
    "pin": "📍",
    "star": "⭐",
    "wait": "⏳",
    "crown": "👑",
}


def media_emoji(media_type: str) -> str:
    return EMOJI["movie"] if media_type == "movie" else EMOJI["tv_show"]


def media_type_label(media_type: str) -> str:
    return "Movie" if media_type == "movie" else "TV Show"


HELP_TEXT = """Textarr Help

Commands:
• "Add [title]" - Add a movie or TV show
• "Add [title] anime" - Add anime content
• "Status" - Check your requests
• "Help" - Show this message

Examples:
• "Add Breaking Bad"
• "Add Attack on Titan anime"
• "Add Dune 2021"

When selecting from a list, reply with the number.
Reply YES/NO to confirm or cancel."""

ADMIN_HELP_TEXT = """Admin Commands:
• "admin list" - List all users
• "admin add <id> Name" - Add user
• "admin remove <id>" - Remove user
• "admin promote <id>" - Make admin
• "admin demote <id>" - Remove admin
• "admin quota <id> movies +5" - Add quota

User IDs by platform:
• SMS: Phone number (e.g., 5551234567)
• Telegram: telegram:123456789
• Discord: discord:123456789012345678
• Slack: slack:U0123456789"""


def format_template(template: str, **values: Any) -> str:
    """Substitui `{chave}` pelos valores; placeholders sem valor são mantidos."""

    def replace(match: re.Match[str]) -> str:
        value = values.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return _PLACEHOLDER.sub(replace, template)


class Messages(BaseModel):
    """Catálogo de mensagens ao usuário (sobrescrevível via config)."""

    # Erros
    generic_error: str = "Something went wrong. Please try again."
    not_configured: str = "Service not configured. Please complete setup."

    # Cancelar/reiniciar
    cancelled: str = "Cancelled. Send a new request anytime!"
    restart: str = "Starting fresh! What would you like to add?"
    back_to_start: str = "Back to the start! What would you like to add?"
    goodbye: str = "Sounds good! Let me know if you need anything."

    # Prompts
    add_prompt: str = "What would you like to add? Try: 'Add Breaking Bad' or 'Add Dune'"
    unknown_command: str = (
        "I didn't understand that. Try: 'Add Breaking Bad' or 'help' for commands."
    )

    # Estado
    nothing_to_confirm: str = "Nothing to confirm. Try requesting a movie or TV show!"
    nothing_to_select: str = "Nothing to select from. Try searching for a movie or TV show!"
    no_previous_results: str = "No previous results to choose from. Try searching for something!"
    nothing_selected: str = "Nothing selected. Try requesting a movie or TV show!"
    select_range: str = "Please select a number between 1 and {max}."

    # Busca
    no_results: str = (
        'No results found for "{query}". Try checking the spelling or being more specific.'
    )
    search_results: str = 'Found {count} results for "{query}":'
    select_prompt: str = "Reply with a number, or search for something else."

    # Confirmação
    confirm_prompt: str = "YES to add, NO to cancel, or pick a different number."
    anime_or_regular_prompt: str = (
        "This appears to be animated content.\n\nReply ANIME or REGULAR to choose library."
    )
    season_select_prompt: str = (
        "Which seasons?\n1. All\n2. First season\n3. Latest season\n4. Future only\n\n"
        "Reply with a number."
    )

    # Sucesso
    media_added: str = "{title} added!\n\nIt will start downloading shortly. Want to add anything else?"
    already_available: str = "{title} is available to watch!"
    already_monitored: str = "{title} is in your library, waiting to download."
    already_in_library: str = "{title} is already in your library!"
    already_requested: str = "{title} has already been requested and is on its way."
    failed_to_add: str = "Failed to add {title}. Please try again."

    # Status
    no_requests: str = "You haven't requested anything yet."
    your_requests: str = "Your requests:"

    # Admin / cota
    quota_exceeded: str = "Request limit reached\n\n{quotaMessage}"
    admin_only: str = "This command is only available to admins."
    no_users: str = "No users configured."
    admin_help_text: str = ADMIN_HELP_TEXT

    # Rótulos de estado
    label_idle: str = "Ready for a new request"
    label_awaiting_selection: str = "Waiting for you to pick from search results"
    label_awaiting_confirmation: str = "Waiting for you to confirm"
    label_awaiting_anime_confirmation: str = "Waiting for anime/regular choice"
    label_awaiting_season_selection: str = "Waiting for season selection"

    help_text: str = HELP_TEXT

    def state_label(self, state: ConversationState) -> str:
        return getattr(self, f"label_{ConversationState(state).value}")
