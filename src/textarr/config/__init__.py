"""Configurações centralizadas do textarr.

Este módulo exporta:
- Settings: classe de configuração via variáveis de ambiente
- get_settings: função cacheada para obter instância única
- Constantes da API Twilio (TWILIO_API_BASE_URL, etc.)

Uso típico:
    from textarr.config import get_settings
"""

from textarr.config.settings import (
    TWILIO_API_BASE_URL,
    TWILIO_API_VERSION,
    TWILIO_MAX_MEDIA_URLS,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "TWILIO_API_BASE_URL",
    "TWILIO_API_VERSION",
    "TWILIO_MAX_MEDIA_URLS",
]
