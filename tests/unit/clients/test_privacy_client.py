from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from intel_market.clients.privacy_client import PrivacyClient
from intel_market.exceptions import ServiceError


def _make_client(mock_response: httpx.Response | None = None) -> PrivacyClient:
    """Create a PrivacyClient with a mock HTTP transport."""
    client = PrivacyClient(
        base_url="http://mock-privacy:8101",
        shield_path="/transfer/shield",
        reveal_path="/transfer/{handle}/reveal",
        timeout_seconds=5,
        shield_price_threshold=0.1,
        shield_reputation_threshold=500,
    )

    mock_http = AsyncMock(spec=httpx.AsyncClient)
    mock_http.post = AsyncMock(return_value=mock_response)
    client._client = mock_http
    return client


def _mock_response(status_code: int, json_body: dict[str, Any]) -> httpx.Response:
    """Create a mock httpx.Response."""
    return httpx.Response(
        status_code=status_code,
        json=json_body,
        request=httpx.Request("POST", "http://mock-privacy:8101/transfer/shield"),
    )


@pytest.mark.unit
@pytest.mark.parametrize(
    ("price", "reputation", "expected"),
    [
        (0.1, 900, True),
        (5.0, 900, True),
        (0.05, 499, True),
        (0.05, 500, False),
        (0.099, 1000, False),
    ],
)
def test_shielding_policy(price: float, reputation: int, expected: bool) -> None:
    client = _make_client()
    assert client.is_shielding_recommended(price, reputation) is expected


@pytest.mark.unit
async def test_shield_returns_handle() -> None:
    client = _make_client(_mock_response(201, {"shielded_tx_id": "stealth-abc"}))

    handle = await client.shield("B", "S", 0.5)

    assert handle == "stealth-abc"
    client._client.post.assert_awaited_once_with(
        "/transfer/shield",
        json={"sender_id": "B", "recipient_id": "S", "amount": 0.5},
    )


@pytest.mark.unit
async def test_shield_missing_handle_raises_502() -> None:
    client = _make_client(_mock_response(200, {"status": "ok"}))

    with pytest.raises(ServiceError) as exc_info:
        await client.shield("B", "S", 0.5)

    assert exc_info.value.status_code == 502
    assert exc_info.value.error == "PRIVACY_UNAVAILABLE"


@pytest.mark.unit
async def test_shield_500_raises_502() -> None:
    client = _make_client(_mock_response(500, {"error": "INTERNAL_ERROR"}))

    with pytest.raises(ServiceError) as exc_info:
        await client.shield("B", "S", 0.5)

    assert exc_info.value.status_code == 502
    assert exc_info.value.error == "PRIVACY_UNAVAILABLE"


@pytest.mark.unit
async def test_shield_connection_error_raises_502() -> None:
    client = _make_client()
    client._client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))

    with pytest.raises(ServiceError) as exc_info:
        await client.shield("B", "S", 0.5)

    assert exc_info.value.status_code == 502
    assert exc_info.value.error == "PRIVACY_UNAVAILABLE"


@pytest.mark.unit
async def test_shield_timeout_raises_502() -> None:
    client = _make_client()
    client._client.post = AsyncMock(side_effect=httpx.ReadTimeout("slow"))

    with pytest.raises(ServiceError) as exc_info:
        await client.shield("B", "S", 0.5)

    assert exc_info.value.status_code == 502


@pytest.mark.unit
async def test_reveal_formats_path_and_returns_body() -> None:
    client = _make_client(_mock_response(200, {"amount": 0.5}))

    result = await client.reveal("stealth-abc")

    assert result == {"amount": 0.5}
    client._client.post.assert_awaited_once_with("/transfer/stealth-abc/reveal", json={})


@pytest.mark.unit
async def test_reveal_404_raises_502() -> None:
    client = _make_client(_mock_response(404, {"error": "NOT_FOUND"}))

    with pytest.raises(ServiceError) as exc_info:
        await client.reveal("stealth-missing")

    assert exc_info.value.status_code == 502
    assert exc_info.value.error == "PRIVACY_UNAVAILABLE"


@pytest.mark.unit
async def test_reveal_http_error_raises_502() -> None:
    client = _make_client()
    client._client.post = AsyncMock(side_effect=httpx.RemoteProtocolError("bad frame"))

    with pytest.raises(ServiceError) as exc_info:
        await client.reveal("stealth-abc")

    assert exc_info.value.status_code == 502


@pytest.mark.unit
async def test_close_closes_http_client() -> None:
    client = _make_client()
    await client.close()
    client._client.aclose.assert_awaited_once()
