"""Contabilização de cota por período (diário, semanal, mensal).

Os contadores (`movies`, `tv_shows`, `last_reset`) vivem no User do
diretório externo; este módulo apenas lê, zera e incrementa, persistindo
pelo próprio diretório (escritor único do snapshot).

Check-and-increment não usa lock: turnos do mesmo usuário são sequenciais
no processo único (ver `serialize_user_turns`).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel

from textarr.domain.enums import MediaType
from textarr.domain.models import User
from textarr.domain.protocols.user_directory import UserDirectory
from textarr.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class QuotaPeriod(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


_PERIOD_NOUN: dict[QuotaPeriod, str] = {
    QuotaPeriod.DAILY: "day",
    QuotaPeriod.WEEKLY: "week",
    QuotaPeriod.MONTHLY: "month",
}


class QuotaConfig(BaseModel):
    """Configuração de cota (limite 0 = ilimitado)."""

    enabled: bool = False
    period: QuotaPeriod = QuotaPeriod.WEEKLY
    movie_limit: int = 10
    tv_show_limit: int = 10
    admin_exempt: bool = True


class QuotaCheckResult(BaseModel):
    allowed: bool
    current: int
    limit: int
    reset_at: datetime
    message: str | None = None
    consumed: bool = False


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _midnight(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def format_reset(reset_at: datetime, now: datetime) -> str:
    """Texto relativo do próximo reset: today, tomorrow, on Friday, on Mar 3."""
    days = math.ceil((reset_at - now).total_seconds() / 86400)
    if days <= 0:
        return "today"
    if days == 1:
        return "tomorrow"
    if days < 7:
        return f"on {reset_at.strftime('%A')}"
    return f"on {reset_at.strftime('%b')} {reset_at.day}"


class QuotaAccountant:
    """Verifica e consome cota de pedidos por tipo de mídia."""

    def __init__(
        self,
        config: QuotaConfig,
        user_directory: UserDirectory,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._users = user_directory
        self._clock = clock

    @property
    def config(self) -> QuotaConfig:
        return self._config

    def period_elapsed(self, last_reset: datetime, now: datetime) -> bool:
        """True se `now` está em outro período que `last_reset`."""
        period = self._config.period
        if period == QuotaPeriod.DAILY:
            return last_reset.date() != now.date()
        if period == QuotaPeriod.WEEKLY:
            return last_reset.isocalendar()[:2] != now.isocalendar()[:2]
        return (last_reset.year, last_reset.month) != (now.year, now.month)

    def next_reset(self, last_reset: datetime) -> datetime:
        """Início do período seguinte: meia-noite, próxima segunda, dia 1."""
        base = _midnight(last_reset)
        period = self._config.period
        if period == QuotaPeriod.DAILY:
            return base + timedelta(days=1)
        if period == QuotaPeriod.WEEKLY:
            return base + timedelta(days=7 - base.weekday())
        if base.month == 12:
            return base.replace(year=base.year + 1, month=1, day=1)
        return base.replace(month=base.month + 1, day=1)

    def _limit_for(self, media_type: MediaType) -> int:
        if media_type == MediaType.MOVIE:
            return self._config.movie_limit
        return self._config.tv_show_limit

    @staticmethod
    def _count_for(user: User, media_type: MediaType) -> int:
        counts = user.request_count
        return counts.movies if media_type == MediaType.MOVIE else counts.tv_shows

    def _is_exempt(self, user: User) -> bool:
        return not self._config.enabled or (user.is_admin and self._config.admin_exempt)

    def _evaluate(self, user: User, media_type: MediaType, now: datetime) -> QuotaCheckResult:
        limit = self._limit_for(media_type)
        current = self._count_for(user, media_type)
        reset_at = self.next_reset(user.request_count.last_reset)
        if limit == 0 or current < limit:
            return QuotaCheckResult(allowed=True, current=current, limit=limit, reset_at=reset_at)

        label = "movie" if media_type == MediaType.MOVIE else "TV show"
        message = (
            f"You've used {current}/{limit} {label} requests this "
            f"{_PERIOD_NOUN[self._config.period]}. Resets {format_reset(reset_at, now)}."
        )
        return QuotaCheckResult(
            allowed=False, current=current, limit=limit, reset_at=reset_at, message=message
        )

    def _apply_period_reset(self, user: User, now: datetime) -> bool:
        if not self.period_elapsed(user.request_count.last_reset, now):
            return False
        user.request_count.movies = 0
        user.request_count.tv_shows = 0
        user.request_count.last_reset = now
        logger.debug("quota_reset", extra={"user": user.id})
        return True

    def check(self, user: User, media_type: MediaType) -> QuotaCheckResult:
        """Avalia a cota sem consumir nem persistir."""
        now = self._clock()
        if self._is_exempt(user):
            return QuotaCheckResult(allowed=True, current=0, limit=0, reset_at=now)
        snapshot = user.model_copy(deep=True)
        self._apply_period_reset(snapshot, now)
        return self._evaluate(snapshot, media_type, now)

    def check_and_consume(self, user: User, media_type: MediaType) -> QuotaCheckResult:
        """Zera contadores se o período virou, verifica e incrementa se permitido."""
        now = self._clock()
        if self._is_exempt(user):
            return QuotaCheckResult(allowed=True, current=0, limit=0, reset_at=now)

        changed = self._apply_period_reset(user, now)
        result = self._evaluate(user, media_type, now)
        if result.allowed:
            if media_type == MediaType.MOVIE:
                user.request_count.movies += 1
            else:
                user.request_count.tv_shows += 1
            result.consumed = True
            changed = True
        if changed:
            self._users.save_user(user)

        logger.info(
            "quota_checked",
            extra={
                "user": user.id,
                "media_type": str(media_type),
                "allowed": result.allowed,
                "current": result.current,
                "limit": result.limit,
            },
        )
        return result

    def _lower(self, user: User, media_type: MediaType, amount: int) -> None:
        counts = user.request_count
        if media_type == MediaType.MOVIE:
            counts.movies = max(0, counts.movies - amount)
        else:
            counts.tv_shows = max(0, counts.tv_shows - amount)
        self._users.save_user(user)

    def release(self, user: User, media_type: MediaType) -> None:
        """Devolve uma unidade consumida (add externo falhou), nunca abaixo de zero."""
        self._lower(user, media_type, 1)
        logger.info("quota_released", extra={"user": user.id, "media_type": str(media_type)})

    def grant(self, user: User, media_type: MediaType, amount: int) -> None:
        """Concede `amount` pedidos extras no período baixando o contador (mínimo zero)."""
        self._lower(user, media_type, amount)
        logger.info(
            "quota_granted",
            extra={"user": user.id, "media_type": str(media_type), "amount": amount},
        )
