"""Re-exports dos contratos externos para uso por Application."""

from __future__ import annotations

from textarr.domain.protocols.intent_parser import (
    AdminCommand,
    IntentParser,
    ParseContext,
    ParsedIntent,
    ParserError,
)
from textarr.domain.protocols.library_manager import (
    AddedItem,
    AddOptions,
    LibraryManager,
    LibraryManagerError,
)
from textarr.domain.protocols.user_directory import UserDirectory

__all__ = [
    "AdminCommand",
    "IntentParser",
    "ParseContext",
    "ParsedIntent",
    "ParserError",
    "LibraryManager",
    "LibraryManagerError",
    "AddOptions",
    "AddedItem",
    "UserDirectory",
]
