"""Testes unitários para infra/http.py.

Valida cliente HTTP com retry, timeout e sanitização de URL.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from textarr.infra.http import (
    HttpClient,
    HttpClientConfig,
    HttpError,
    _calculate_backoff,
    _is_retryable_status,
    _sanitize_url,
    create_http_client,
)


def _response(status_code: int) -> MagicMock:
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    return response


def _client_with(*responses) -> tuple[HttpClient, AsyncMock]:
    client = HttpClient(HttpClientConfig(max_retries=2))
    mock_httpx_client = AsyncMock()
    mock_httpx_client.is_closed = False
    mock_httpx_client.request.side_effect = list(responses)
    client._client = mock_httpx_client
    return client, mock_httpx_client


class TestHelpers:
    def test_sanitize_url_masks_account_sid(self) -> None:
        url = "https://api.twilio.com/2010-04-01/Accounts/AC123456/Messages.json"
        sanitized = _sanitize_url(url)
        assert "AC123456" not in sanitized
        assert "/Accounts/***/Messages.json" in sanitized

    def test_sanitize_url_masks_api_key(self) -> None:
        sanitized = _sanitize_url("http://radarr:7878/api/v3/movie?apikey=secret&term=dune")
        assert "secret" not in sanitized
        assert "apikey=***" in sanitized
        assert "term=dune" in sanitized

    def test_sanitize_url_preserves_clean_url(self) -> None:
        url = "https://api.example.com/path"
        assert _sanitize_url(url) == url

    def test_is_retryable_status(self) -> None:
        assert _is_retryable_status(429) is True
        assert _is_retryable_status(503) is True
        assert _is_retryable_status(400) is False
        assert _is_retryable_status(404) is False

    def test_calculate_backoff(self) -> None:
        assert _calculate_backoff(0, 2.0, 30.0) == 2.0
        assert _calculate_backoff(2, 2.0, 30.0) == 8.0
        assert _calculate_backoff(5, 2.0, 10.0) == 10.0


class TestHttpClientAsync:
    @pytest.mark.asyncio
    async def test_post_form_data(self) -> None:
        """POST deve repassar `data` (form-encoded) ao httpx."""
        client, mock_httpx_client = _client_with(_response(201))
        form = {"To": "+15551234567", "Body": "hi"}

        response = await client.post("https://api.example.com", data=form)

        assert response.status_code == 201
        mock_httpx_client.request.assert_called_once_with(
            "POST", "https://api.example.com", json=None, data=form
        )

    @pytest.mark.asyncio
    async def test_retry_on_5xx(self) -> None:
        client, mock_httpx_client = _client_with(_response(500), _response(502), _response(200))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            response = await client.get("https://api.example.com")

        assert response.status_code == 200
        assert mock_httpx_client.request.call_count == 3

    @pytest.mark.asyncio
    async def test_no_retry_on_4xx(self) -> None:
        client, mock_httpx_client = _client_with(_response(400))

        with pytest.raises(HttpError) as exc_info:
            await client.get("https://api.example.com")

        assert exc_info.value.status_code == 400
        assert exc_info.value.is_retryable is False
        assert mock_httpx_client.request.call_count == 1

    @pytest.mark.asyncio
    async def test_timeout_is_retried_then_raised(self) -> None:
        timeout = httpx.ReadTimeout("slow")
        client, mock_httpx_client = _client_with(timeout, timeout, timeout)

        with (
            patch("asyncio.sleep", new_callable=AsyncMock),
            pytest.raises(HttpError) as exc_info,
        ):
            await client.get("https://api.example.com")

        assert exc_info.value.is_retryable is True
        assert mock_httpx_client.request.call_count == 3

    @pytest.mark.asyncio
    async def test_close_client(self) -> None:
        client, mock_httpx_client = _client_with()
        await client.close()
        mock_httpx_client.aclose.assert_awaited_once()


def test_create_http_client_from_settings(settings_factory) -> None:
    settings = settings_factory(http_timeout_seconds=5, http_max_retries=1)
    client = create_http_client(settings, auth=("AC1", "token"))
    assert client._config.timeout_seconds == 5.0
    assert client._config.max_retries == 1
    assert client._config.auth == ("AC1", "token")
    assert client._config.default_headers["User-Agent"].startswith("textarr/")
