"""Configurações da aplicação via variáveis de ambiente.

Todas as configurações são carregadas de env vars (ou arquivo .env).
Nunca hardcode secrets (Twilio, webhook secret) no código.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict

from textarr.observability.logging import get_logger

# -----------------------------------------------------------------------------
# Constantes da API Twilio (envio de SMS/MMS)
# -----------------------------------------------------------------------------
TWILIO_API_BASE_URL: str = "https://api.twilio.com"
TWILIO_API_VERSION: str = "2010-04-01"
TWILIO_MAX_MEDIA_URLS: int = 10

VALID_QUOTA_PERIODS = frozenset({"daily", "weekly", "monthly"})
VALID_PLATFORMS = frozenset({"sms", "discord", "slack", "telegram"})


class Settings(BaseSettings):
    """Configurações lidas do ambiente.

    Comentários em PT-BR são obrigatórios por diretriz do projeto.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    # Aplicação
    service_name: str = "textarr"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"  # json | text

    # Sessão de conversa (somente em memória)
    session_timeout_seconds: int = 300  # 5 minutos de inatividade
    session_sweep_interval_seconds: int = 60  # Varredura de sessões expiradas
    session_max_search_results: int = 5  # Máximo de itens na lista de seleção
    session_history_max_entries: int = 10  # Mensagens recentes para o parser
    serialize_user_turns: bool = True  # Lock por usuário em volta de cada turno

    # Snapshot JSON (usuários + pedidos)
    data_file: str = "config/data.json"
    request_retention_days: int = 30  # Retenção de pedidos terminais
    request_prune_interval_seconds: int = 3600  # Intervalo do prune periódico

    # Cotas
    quota_enabled: bool = False
    quota_period: str = "weekly"  # daily | weekly | monthly
    quota_movie_limit: int = 10  # 0 = ilimitado
    quota_tv_show_limit: int = 10  # 0 = ilimitado
    quota_admin_exempt: bool = True

    # Notificação de download concluído
    download_notifications_enabled: bool = True
    download_webhook_secret: str | None = None  # Vazio = webhooks abertos
    download_message_template: str = "{emoji} {title}{year} is ready to watch!"
    notification_platforms: list[str] = ["sms"]  # Plataformas com envio outbound

    # Notificação de novos pedidos para admins
    admin_notifications_enabled: bool = True

    # Resposta para usuários não cadastrados (SMS sempre fica em silêncio)
    telegram_respond_unregistered: bool = False
    discord_respond_unregistered: bool = False
    slack_respond_unregistered: bool = False
    unregistered_message: str = (
        "You're not registered.\n\nYour {platform} ID: {id}\n\n"
        "Share this with your admin to get access!"
    )

    # SMS (Twilio)
    sms_enabled: bool = False
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None  # Secret
    twilio_phone_number: str | None = None
    twilio_api_base_url: str = TWILIO_API_BASE_URL
    sms_send_media: bool = False  # MMS com pôster

    # HTTP de saída
    http_timeout_seconds: float = 30.0
    http_max_retries: int = 3
    http_backoff_base_seconds: float = 2.0

    # Shutdown
    shutdown_drain_timeout_seconds: float = 10.0

    # Radarr (opções de add)
    radarr_quality_profile_id: int = 1
    radarr_root_folder: str = "/movies"
    radarr_anime_root_folder: str | None = None
    radarr_anime_quality_profile_id: int | None = None
    radarr_anime_tag_ids: list[int] = []

    # Sonarr (opções de add)
    sonarr_quality_profile_id: int = 1
    sonarr_root_folder: str = "/tv"
    sonarr_anime_root_folder: str | None = None
    sonarr_anime_quality_profile_id: int | None = None
    sonarr_anime_tag_ids: list[int] = []

    @property
    def twilio_messages_endpoint(self) -> str:
        """URL do endpoint Messages da conta Twilio configurada."""
        if not self.twilio_account_sid:
            raise ValueError("twilio_account_sid é obrigatório")
        return (
            f"{self.twilio_api_base_url}/{TWILIO_API_VERSION}"
            f"/Accounts/{self.twilio_account_sid}/Messages.json"
        )

    def respond_to_unregistered(self, platform: str) -> bool:
        """Retorna se a plataforma responde a usuários não cadastrados."""
        if platform == "sms":
            return False
        return bool(getattr(self, f"{platform}_respond_unregistered", False))

    def validate_session_config(self) -> list[str]:
        """Valida timeouts da sessão de conversa."""
        errors: list[str] = []
        if self.session_timeout_seconds <= 0:
            errors.append("SESSION_TIMEOUT_SECONDS deve ser > 0")
        if self.session_sweep_interval_seconds <= 0:
            errors.append("SESSION_SWEEP_INTERVAL_SECONDS deve ser > 0")
        if self.session_max_search_results < 1:
            errors.append("SESSION_MAX_SEARCH_RESULTS deve ser >= 1")
        return errors

    def validate_quota_config(self) -> list[str]:
        """Valida configuração de cotas."""
        errors: list[str] = []
        if self.quota_period.lower() not in VALID_QUOTA_PERIODS:
            errors.append(
                f"QUOTA_PERIOD '{self.quota_period}' inválido. "
                f"Valores válidos: {sorted(VALID_QUOTA_PERIODS)}"
            )
        if self.quota_movie_limit < 0 or self.quota_tv_show_limit < 0:
            errors.append("Limites de cota devem ser >= 0 (0 = ilimitado)")
        return errors

    def validate_notification_config(self) -> list[str]:
        """Valida plataformas de notificação e retenção de pedidos."""
        errors: list[str] = []
        unknown = set(self.notification_platforms) - VALID_PLATFORMS
        if unknown:
            errors.append(f"NOTIFICATION_PLATFORMS contém plataformas inválidas: {sorted(unknown)}")
        if self.request_retention_days < 1:
            errors.append("REQUEST_RETENTION_DAYS deve ser >= 1")
        return errors

    def validate_sms_config(self) -> list[str]:
        """Valida credenciais Twilio quando SMS está habilitado.

        Retorna lista de erros (vazia = tudo OK).
        """
        errors: list[str] = []
        if not self.sms_enabled:
            return errors
        if not self.twilio_account_sid:
            errors.append("SMS_ENABLED=true requer TWILIO_ACCOUNT_SID configurado")
        if not self.twilio_auth_token:
            errors.append("SMS_ENABLED=true requer TWILIO_AUTH_TOKEN configurado")
        if not self.twilio_phone_number:
            errors.append("SMS_ENABLED=true requer TWILIO_PHONE_NUMBER configurado")
        return errors

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local")

    def model_post_init(self, __context: Any) -> None:
        """Registra o ambiente carregado (sem expor secrets)."""
        logger: logging.Logger = get_logger(__name__)
        if self.is_production and not self.download_webhook_secret:
            logger.warning(
                "DOWNLOAD_WEBHOOK_SECRET ausente: webhooks de download aceitam qualquer origem",
                extra={"environment": self.environment},
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings.

    A cache garante que mesmo múltiplas injeções não criam novos objetos.
    """
    return Settings()
