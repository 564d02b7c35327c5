"""Tests for the EAS ledger client.

The web3 transport is replaced on the instance; no RPC endpoint is contacted.

Coverage target: app/witness/ledger.py
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from web3.exceptions import ContractLogicError, TimeExhausted

from app.witness.ledger import (
    AttestationRecord,
    AttestationRequestData,
    EASLedger,
    LedgerError,
    get_ledger,
)

from conftest import ATTESTATION_UID, CHAIN_ID, EAS_CONTRACT, ISSUER_KEY, KEY_BINDING_UID, WITNESS_UID

ZERO_UID = "0x" + "00" * 32
SENDER = "0x" + "22" * 20


def ledger_with_mocks(receipt=None, events=None, send_error=None):
    """EASLedger with its web3 client, contract and account replaced."""
    ledger = EASLedger(CHAIN_ID, EAS_CONTRACT, "http://127.0.0.1:8545", private_key=ISSUER_KEY)

    w3 = MagicMock()
    w3.eth.get_transaction_count = AsyncMock(return_value=7)
    if send_error is not None:
        w3.eth.send_raw_transaction = AsyncMock(side_effect=send_error)
    else:
        w3.eth.send_raw_transaction = AsyncMock(return_value=bytes.fromhex("ef" * 32))
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value=receipt or {
        "status": 1,
        "transactionHash": bytes.fromhex("ef" * 32),
        "blockNumber": 1234,
    })

    contract = MagicMock()
    contract.functions.attest.return_value.build_transaction = AsyncMock(return_value={"nonce": 7})
    contract.events.Attested.return_value.process_receipt.return_value = (
        events if events is not None else [{"args": {"uid": bytes.fromhex("99" * 32)}}]
    )

    account = MagicMock()
    account.address = SENDER
    account.sign_transaction.return_value = MagicMock(raw_transaction=b"\x01\x02")

    ledger._w3 = w3
    ledger._contract = contract
    ledger._account = account
    return ledger


class TestAttestationRecord:

    def test_from_struct(self):
        struct = (
            bytes.fromhex("ab" * 32),
            bytes.fromhex(KEY_BINDING_UID[2:]),
            1_700_000_000,
            0,
            0,
            bytes(32),
            "0x" + "00" * 20,
            "0x7D5beD223Bc343F114Aa28961Cc447dbbc9c2330",
            False,
            b"\x00\x01",
        )
        record = AttestationRecord.from_struct(struct)

        assert record.uid == ATTESTATION_UID
        assert record.schema == KEY_BINDING_UID
        assert record.time == 1_700_000_000
        assert record.revocation_time == 0
        assert record.ref_uid == ZERO_UID
        assert record.data == b"\x00\x01"
        assert record.exists

    def test_zeroed_struct_does_not_exist(self):
        assert not AttestationRecord(uid=ZERO_UID, schema=ZERO_UID).exists
        assert not AttestationRecord(uid=ATTESTATION_UID, schema=ZERO_UID).exists

    def test_request_tuple_defaults(self):
        recipient, expiration, revocable, ref_uid, data, value = (
            AttestationRequestData(data=b"\x01").as_tuple()
        )
        assert recipient == "0x0000000000000000000000000000000000000000"
        assert expiration == 0
        assert revocable is False
        assert ref_uid == bytes(32)
        assert data == b"\x01"
        assert value == 0


class TestGetAttestation:

    @pytest.mark.asyncio
    async def test_reads_struct(self):
        ledger = EASLedger(CHAIN_ID, EAS_CONTRACT, "http://127.0.0.1:8545")
        contract = MagicMock()
        contract.functions.getAttestation.return_value.call = AsyncMock(return_value=(
            bytes.fromhex("ab" * 32), bytes.fromhex(KEY_BINDING_UID[2:]), 1, 0, 0,
            bytes(32), "0x" + "00" * 20, SENDER, False, b"",
        ))
        ledger._contract = contract

        record = await ledger.get_attestation(ATTESTATION_UID)

        contract.functions.getAttestation.assert_called_once_with(bytes.fromhex("ab" * 32))
        assert record.uid == ATTESTATION_UID

    @pytest.mark.asyncio
    async def test_transport_error(self):
        ledger = EASLedger(CHAIN_ID, EAS_CONTRACT, "http://127.0.0.1:8545")
        contract = MagicMock()
        contract.functions.getAttestation.return_value.call = AsyncMock(
            side_effect=ConnectionRefusedError("refused")
        )
        ledger._contract = contract

        with pytest.raises(LedgerError, match="getAttestation"):
            await ledger.get_attestation(ATTESTATION_UID)

    def test_read_only_ledger_has_no_signer(self):
        assert EASLedger(CHAIN_ID, EAS_CONTRACT, "http://127.0.0.1:8545").signer_address is None


class TestAttest:

    @pytest.mark.asyncio
    async def test_confirmed_attestation(self):
        ledger = ledger_with_mocks()

        submitted = await ledger.attest(KEY_BINDING_UID, AttestationRequestData(data=b"\x01"))

        assert submitted.uid == WITNESS_UID
        assert submitted.tx_hash == "0x" + "ef" * 32
        assert submitted.block_number == 1234
        ledger._w3.eth.get_transaction_count.assert_awaited_once_with(SENDER, "pending")
        ledger._w3.eth.send_raw_transaction.assert_awaited_once_with(b"\x01\x02")

    @pytest.mark.asyncio
    async def test_revert_reason(self):
        ledger = ledger_with_mocks(
            send_error=ContractLogicError("execution reverted: InvalidSchema")
        )

        with pytest.raises(LedgerError) as exc:
            await ledger.attest(KEY_BINDING_UID, AttestationRequestData(data=b"\x01"))

        assert exc.value.reason == "execution reverted: InvalidSchema"

    @pytest.mark.asyncio
    async def test_receipt_timeout(self):
        ledger = ledger_with_mocks()
        ledger._w3.eth.wait_for_transaction_receipt = AsyncMock(side_effect=TimeExhausted())

        with pytest.raises(LedgerError, match="receipt not received"):
            await ledger.attest(KEY_BINDING_UID, AttestationRequestData(data=b"\x01"))

    @pytest.mark.asyncio
    async def test_failed_receipt(self):
        ledger = ledger_with_mocks(receipt={"status": 0, "transactionHash": bytes(32)})

        with pytest.raises(LedgerError) as exc:
            await ledger.attest(KEY_BINDING_UID, AttestationRequestData(data=b"\x01"))

        assert exc.value.reason == "transaction reverted"

    @pytest.mark.asyncio
    async def test_missing_event(self):
        ledger = ledger_with_mocks(events=[])

        with pytest.raises(LedgerError, match="No Attested event"):
            await ledger.attest(KEY_BINDING_UID, AttestationRequestData(data=b"\x01"))

    @pytest.mark.asyncio
    async def test_no_signing_key(self):
        ledger = EASLedger(CHAIN_ID, EAS_CONTRACT, "http://127.0.0.1:8545")
        with pytest.raises(LedgerError, match="No signing key"):
            await ledger.attest(KEY_BINDING_UID, AttestationRequestData(data=b"\x01"))


class TestGetLedger:

    def test_configured_chain(self):
        ledger = get_ledger(CHAIN_ID, EAS_CONTRACT.lower())
        assert ledger.chain_id == CHAIN_ID
        assert ledger.eas_contract == EAS_CONTRACT

    def test_unconfigured_chain(self):
        with patch.dict("app.core.config.CHAIN_RPC_URLS", {}, clear=True):
            with pytest.raises(LedgerError, match="No RPC URL configured for chain 1"):
                get_ledger(1, EAS_CONTRACT)
