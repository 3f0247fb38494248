"""Package `session`: estado de conversa por usuário.

Exports principais:
- ConversationSession: modelo da sessão (de session/models.py)
- ConversationSessionStore: store em memória com expiração (de session/store.py)
- ConversationState: estados do diálogo
"""

from __future__ import annotations

from textarr.application.session.models import ConversationSession
from textarr.application.session.store import ConversationSessionStore
from textarr.domain.enums import ConversationState

__all__ = ["ConversationSession", "ConversationSessionStore", "ConversationState"]
