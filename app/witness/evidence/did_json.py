"""did.json evidence.

Fetches `https://<domain>/.well-known/did.json` and looks for the expected
controller address among the `verificationMethod` entries.

Fetch constraints:
- Timeout: EVIDENCE_FETCH_TIMEOUT_SECONDS
- Max size: DID_DOC_MAX_SIZE_BYTES
- Max redirects: DID_DOC_MAX_REDIRECTS
"""

import json
import logging
from typing import Any, List

import httpx

from app.core.config import (
    DID_DOC_MAX_REDIRECTS,
    DID_DOC_MAX_SIZE_BYTES,
    DID_DOC_PATH,
    EVIDENCE_FETCH_TIMEOUT_SECONDS,
)
from app.witness.did import addresses_match, parse_caip10

from .models import EvidenceChecker, EvidenceMethod, EvidenceResult

log = logging.getLogger("witness.evidence.did_json")


class DidDocFetchError(Exception):
    """did.json could not be retrieved or parsed."""


async def fetch_did_document(url: str) -> Any:
    """Fetch and parse a DID document.

    Raises:
        DidDocFetchError: On network/timeout/status/size/JSON errors.
    """
    try:
        async with httpx.AsyncClient(
            timeout=EVIDENCE_FETCH_TIMEOUT_SECONDS,
            max_redirects=DID_DOC_MAX_REDIRECTS,
            follow_redirects=True,
        ) as client:
            response = await client.get(url, headers={"Accept": "application/json"})

            if response.status_code >= 400:
                raise DidDocFetchError(
                    f"DID document fetch failed: HTTP {response.status_code} at {url}"
                )

            content = response.content
            if len(content) > DID_DOC_MAX_SIZE_BYTES:
                raise DidDocFetchError(
                    f"DID document at {url} is {len(content)} bytes, "
                    f"exceeds limit of {DID_DOC_MAX_SIZE_BYTES} bytes"
                )

            return json.loads(content)

    except DidDocFetchError:
        raise
    except httpx.TimeoutException:
        raise DidDocFetchError(
            f"Timeout after {EVIDENCE_FETCH_TIMEOUT_SECONDS}s fetching {url}"
        )
    except httpx.TooManyRedirects:
        raise DidDocFetchError(f"Exceeded {DID_DOC_MAX_REDIRECTS} redirects fetching {url}")
    except httpx.RequestError as e:
        raise DidDocFetchError(f"Failed to fetch DID document at {url}: {e}")
    except ValueError as e:
        raise DidDocFetchError(f"DID document at {url} is not valid JSON: {e}")


async def find_controller_in_did_doc(domain: str, expected_controller: str) -> EvidenceResult:
    """Look for the expected controller in a domain's did.json.

    Checks `blockchainAccountId` (CAIP-10) and `publicKeyHex` (raw address
    without 0x) on every verificationMethod entry.

    Args:
        domain: Bare domain (e.g. "example.com"), not a DID.
        expected_controller: DID or address to match against.
    """
    url = f"https://{domain}{DID_DOC_PATH}"

    try:
        did_doc = await fetch_did_document(url)
    except DidDocFetchError as e:
        return EvidenceResult(found=False, details=str(e))

    methods = did_doc.get("verificationMethod") if isinstance(did_doc, dict) else None
    if not isinstance(methods, list) or not methods:
        return EvidenceResult(
            found=False,
            details=f"DID document at {url} has no verificationMethod entries",
        )

    found_addresses: List[str] = []
    for method in methods:
        if not isinstance(method, dict):
            continue

        account_id = method.get("blockchainAccountId")
        if isinstance(account_id, str):
            account = parse_caip10(account_id)
            if account is not None:
                found_addresses.append(account.address)
                if addresses_match(account.address, expected_controller):
                    return EvidenceResult(found=True, matched_controller=f"did:pkh:{account_id}")

        public_key_hex = method.get("publicKeyHex")
        if isinstance(public_key_hex, str) and public_key_hex:
            address = "0x" + public_key_hex.removeprefix("0x")
            found_addresses.append(address)
            if addresses_match(address, expected_controller):
                return EvidenceResult(found=True, matched_controller=address)

    log.debug(f"did.json at {url} listed {len(found_addresses)} addresses, none matched")
    return EvidenceResult(
        found=False,
        details=(
            f"Addresses [{', '.join(found_addresses)}] in {url} "
            f"do not match expected {expected_controller}"
        ),
    )


class DidJsonChecker(EvidenceChecker):
    method = EvidenceMethod.DID_JSON

    async def find(self, domain: str, expected_controller: str) -> EvidenceResult:
        return await find_controller_in_did_doc(domain, expected_controller)
