"""Shared fixtures for controller witness tests.

Every test starts from the same known state:
- approved chains: OMAchain testnet with its EAS predeploy only
- schema registry: built-in schemas, with controller-witness deployed
- issuer key: a fixed test key in ISSUER_PRIVATE_KEY
- empty witness cache
"""

import time
from typing import Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core import config
from app.witness.cache import reset_witness_cache
from app.witness.encoding import SchemaEncoder
from app.witness.ledger import AttestationRecord, SubmittedAttestation
from app.witness.schema_registry import (
    BUILTIN_SCHEMAS,
    reset_schema_registry,
    set_schema_registry,
)


# =============================================================================
# Test values
# =============================================================================

CHAIN_ID = config.OMACHAIN_TESTNET_CHAIN_ID
EAS_CONTRACT = config.OMACHAIN_TESTNET_EAS_CONTRACT
KEY_BINDING_UID = "0x807b38ce9aa23fdde4457de01db9c5e8d6ec7c8feebee242e52be70847b7b966"
CONTROLLER_WITNESS_UID = "0x" + "cd" * 32
ATTESTATION_UID = "0x" + "ab" * 32
WITNESS_UID = "0x" + "99" * 32
TX_HASH = "0x" + "ef" * 32

SUBJECT = "did:web:example.com"
CONTROLLER_ADDRESS = "0x1234567890AbcdEF1234567890aBcdef12345678"
CONTROLLER = f"did:pkh:eip155:{CHAIN_ID}:{CONTROLLER_ADDRESS}"

ISSUER_KEY = "0x" + "11" * 32
# Signer reported by the mock ledger; not an approved attester
ISSUER_ADDRESS = "0x" + "22" * 20

KEY_BINDING_SCHEMA = (
    "string subject,string keyId,string[] keyPurpose,"
    "uint256 issuedAt,uint256 effectiveAt,uint256 expiresAt"
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def witness_environment(monkeypatch):
    """Reset singletons and pin configuration for each test."""
    reset_witness_cache()
    set_schema_registry([
        s.model_copy(update={"deployed_uids": {CHAIN_ID: CONTROLLER_WITNESS_UID}})
        if s.id == config.CONTROLLER_WITNESS_SCHEMA_ID else s
        for s in BUILTIN_SCHEMAS
    ])
    monkeypatch.setenv("ISSUER_PRIVATE_KEY", ISSUER_KEY)
    with patch.dict(config.APPROVED_WITNESS_CHAINS, {CHAIN_ID: EAS_CONTRACT}, clear=True):
        yield
    reset_witness_cache()
    reset_schema_registry()


@pytest.fixture
def witness_body():
    """A valid raw request body for POST /api/controller-witness."""
    return {
        "attestationUid": ATTESTATION_UID,
        "chainId": CHAIN_ID,
        "easContract": EAS_CONTRACT,
        "schemaUid": KEY_BINDING_UID,
        "subject": SUBJECT,
        "controller": CONTROLLER,
        "method": "dns-txt",
    }


def key_binding_data(subject: str = SUBJECT, key_id: str = CONTROLLER) -> bytes:
    now = int(time.time())
    return SchemaEncoder(KEY_BINDING_SCHEMA).encode_data({
        "subject": subject,
        "keyId": key_id,
        "keyPurpose": ["authentication"],
        "issuedAt": now,
        "effectiveAt": now,
        "expiresAt": 0,
    })


@pytest.fixture
def make_attestation():
    """Factory for a key-binding AttestationRecord as the ledger returns it."""
    def _make(
        subject: str = SUBJECT,
        key_id: str = CONTROLLER,
        schema: str = KEY_BINDING_UID,
        revocation_time: int = 0,
        uid: str = ATTESTATION_UID,
        data: Optional[bytes] = None,
    ) -> AttestationRecord:
        return AttestationRecord(
            uid=uid,
            schema=schema,
            time=int(time.time()),
            revocation_time=revocation_time,
            attester="0x7D5beD223Bc343F114Aa28961Cc447dbbc9c2330",
            data=key_binding_data(subject, key_id) if data is None else data,
        )
    return _make


@pytest.fixture
def make_ledger(make_attestation):
    """Factory for a mock EASLedger.

    get_attestation returns a matching key-binding attestation unless one is
    given; attest returns WITNESS_UID.
    """
    def _make(attestation=None, attest_error=None, get_error=None) -> MagicMock:
        ledger = MagicMock()
        ledger.signer_address = ISSUER_ADDRESS
        if get_error is not None:
            ledger.get_attestation = AsyncMock(side_effect=get_error)
        else:
            ledger.get_attestation = AsyncMock(
                return_value=attestation if attestation is not None else make_attestation()
            )
        if attest_error is not None:
            ledger.attest = AsyncMock(side_effect=attest_error)
        else:
            ledger.attest = AsyncMock(
                return_value=SubmittedAttestation(uid=WITNESS_UID, tx_hash=TX_HASH, block_number=1234)
            )
        return ledger
    return _make
