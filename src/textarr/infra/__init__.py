"""Camada de infraestrutura: persistência e I/O externo.

Este módulo exporta:

- Snapshot: JsonSnapshotStore (escritor único do arquivo JSON)
- Ledger: RequestLedger
- Usuários: JsonUserDirectory
- HTTP: HttpClient
- Agendamento: PeriodicTask

Uso típico:
    from textarr.infra import JsonSnapshotStore, RequestLedger

Infraestrutura não decide regra de negócio; logs estruturados sem PII.
"""

from textarr.infra.http import (
    HttpClient,
    HttpClientConfig,
    HttpError,
    create_http_client,
)
from textarr.infra.periodic import PeriodicTask
from textarr.infra.request_ledger import RequestLedger
from textarr.infra.snapshot import JsonSnapshotStore, SnapshotError
from textarr.infra.user_directory import JsonUserDirectory

__all__ = [
    # Snapshot
    "JsonSnapshotStore",
    "SnapshotError",
    # Ledger
    "RequestLedger",
    # Usuários
    "JsonUserDirectory",
    # HTTP
    "HttpClient",
    "HttpClientConfig",
    "HttpError",
    "create_http_client",
    # Agendamento
    "PeriodicTask",
]
