"""Tests for did.json controller evidence.

Coverage target: app/witness/evidence/did_json.py
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.core.config import DID_DOC_MAX_SIZE_BYTES
from app.witness.evidence import (
    DidDocFetchError,
    DidJsonChecker,
    EvidenceMethod,
    find_controller_in_did_doc,
)
from app.witness.evidence.did_json import fetch_did_document

from conftest import CONTROLLER, CONTROLLER_ADDRESS


def mock_http_client(mock_client, status_code=200, content=b"", side_effect=None):
    """Wire a patched httpx.AsyncClient to return one response."""
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.content = content

    mock_instance = AsyncMock()
    if side_effect is not None:
        mock_instance.get = AsyncMock(side_effect=side_effect)
    else:
        mock_instance.get = AsyncMock(return_value=mock_response)
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=None)
    mock_client.return_value = mock_instance
    return mock_instance


def did_doc(*methods):
    return json.dumps({
        "id": "did:web:example.com",
        "verificationMethod": list(methods),
    }).encode()


class TestFindControllerInDidDoc:

    @pytest.mark.asyncio
    async def test_blockchain_account_id_matches(self):
        doc = did_doc({
            "id": "did:web:example.com#owner",
            "type": "EcdsaSecp256k1RecoveryMethod2020",
            "controller": "did:web:example.com",
            "blockchainAccountId": f"eip155:66238:{CONTROLLER_ADDRESS}",
        })
        with patch("httpx.AsyncClient") as mock_client:
            instance = mock_http_client(mock_client, content=doc)
            result = await find_controller_in_did_doc("example.com", CONTROLLER)

        instance.get.assert_awaited_once()
        assert instance.get.call_args.args[0] == "https://example.com/.well-known/did.json"
        assert result.found
        assert result.matched_controller == f"did:pkh:eip155:66238:{CONTROLLER_ADDRESS}"

    @pytest.mark.asyncio
    async def test_public_key_hex_matches(self):
        doc = did_doc(
            {"id": "#key-1", "publicKeyMultibase": "z6Mk..."},
            {"id": "#key-2", "publicKeyHex": CONTROLLER_ADDRESS[2:].lower()},
        )
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, content=doc)
            result = await find_controller_in_did_doc("example.com", CONTROLLER)
        assert result.found

    @pytest.mark.asyncio
    async def test_no_matching_address(self):
        other = "0x" + "99" * 20
        doc = did_doc({"blockchainAccountId": f"eip155:1:{other}"})
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, content=doc)
            result = await find_controller_in_did_doc("example.com", CONTROLLER)
        assert not result.found
        assert other in result.details
        assert "do not match expected" in result.details

    @pytest.mark.asyncio
    async def test_no_verification_methods(self):
        doc = json.dumps({"id": "did:web:example.com"}).encode()
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, content=doc)
            result = await find_controller_in_did_doc("example.com", CONTROLLER)
        assert not result.found
        assert "has no verificationMethod entries" in result.details

    @pytest.mark.asyncio
    async def test_http_error_is_not_found(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, status_code=404)
            result = await find_controller_in_did_doc("example.com", CONTROLLER)
        assert not result.found
        assert "HTTP 404" in result.details


class TestFetchDidDocument:

    @pytest.mark.asyncio
    async def test_fetch_uses_bounded_client(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, content=b"{}")
            assert await fetch_did_document("https://example.com/.well-known/did.json") == {}

        kwargs = mock_client.call_args.kwargs
        assert kwargs["follow_redirects"] is True
        assert kwargs["max_redirects"] == 3

    @pytest.mark.asyncio
    async def test_oversized_document(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, content=b" " * (DID_DOC_MAX_SIZE_BYTES + 1))
            with pytest.raises(DidDocFetchError, match="exceeds limit"):
                await fetch_did_document("https://example.com/.well-known/did.json")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, content=b"<html>")
            with pytest.raises(DidDocFetchError, match="not valid JSON"):
                await fetch_did_document("https://example.com/.well-known/did.json")

    @pytest.mark.asyncio
    async def test_timeout(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, side_effect=httpx.TimeoutException("timeout"))
            with pytest.raises(DidDocFetchError, match="Timeout"):
                await fetch_did_document("https://example.com/.well-known/did.json")

    @pytest.mark.asyncio
    async def test_too_many_redirects(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, side_effect=httpx.TooManyRedirects("loop"))
            with pytest.raises(DidDocFetchError, match="redirects"):
                await fetch_did_document("https://example.com/.well-known/did.json")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, side_effect=httpx.ConnectError("refused"))
            with pytest.raises(DidDocFetchError, match="Failed to fetch"):
                await fetch_did_document("https://example.com/.well-known/did.json")


class TestDidJsonChecker:

    @pytest.mark.asyncio
    async def test_checker_delegates(self):
        checker = DidJsonChecker()
        assert checker.method is EvidenceMethod.DID_JSON
        doc = did_doc({"blockchainAccountId": f"eip155:66238:{CONTROLLER_ADDRESS}"})
        with patch("httpx.AsyncClient") as mock_client:
            mock_http_client(mock_client, content=doc)
            assert (await checker.find("example.com", CONTROLLER)).found
