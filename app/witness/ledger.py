"""EAS ledger client.

Reads attestations with `getAttestation(bytes32)` and issues new ones with
`attest(AttestationRequest)` on an Ethereum Attestation Service contract,
over the chain's JSON-RPC endpoint.

The new attestation's UID is taken from the `Attested` event in the
transaction receipt.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp
from eth_utils import to_bytes, to_checksum_address
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.logs import DISCARD

from app.core.config import (
    LEDGER_RPC_TIMEOUT_SECONDS,
    RECEIPT_TIMEOUT_SECONDS,
    ZERO_ADDRESS,
    ZERO_UID,
    get_rpc_url,
)

log = logging.getLogger("witness.ledger")

_ATTESTATION_COMPONENTS = [
    {"name": "uid", "type": "bytes32"},
    {"name": "schema", "type": "bytes32"},
    {"name": "time", "type": "uint64"},
    {"name": "expirationTime", "type": "uint64"},
    {"name": "revocationTime", "type": "uint64"},
    {"name": "refUID", "type": "bytes32"},
    {"name": "recipient", "type": "address"},
    {"name": "attester", "type": "address"},
    {"name": "revocable", "type": "bool"},
    {"name": "data", "type": "bytes"},
]

EAS_ABI = [
    {
        "name": "getAttestation",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "uid", "type": "bytes32"}],
        "outputs": [{"name": "", "type": "tuple", "components": _ATTESTATION_COMPONENTS}],
    },
    {
        "name": "attest",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "request",
                "type": "tuple",
                "components": [
                    {"name": "schema", "type": "bytes32"},
                    {
                        "name": "data",
                        "type": "tuple",
                        "components": [
                            {"name": "recipient", "type": "address"},
                            {"name": "expirationTime", "type": "uint64"},
                            {"name": "revocable", "type": "bool"},
                            {"name": "refUID", "type": "bytes32"},
                            {"name": "data", "type": "bytes"},
                            {"name": "value", "type": "uint256"},
                        ],
                    },
                ],
            }
        ],
        "outputs": [{"name": "", "type": "bytes32"}],
    },
    {
        "name": "Attested",
        "type": "event",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "recipient", "type": "address"},
            {"indexed": True, "name": "attester", "type": "address"},
            {"indexed": False, "name": "uid", "type": "bytes32"},
            {"indexed": True, "name": "schemaUID", "type": "bytes32"},
        ],
    },
]


def _hex32(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value).lower()


@dataclass(frozen=True)
class AttestationRecord:
    """An attestation as stored on the ledger."""
    uid: str
    schema: str
    time: int = 0
    expiration_time: int = 0
    revocation_time: int = 0
    ref_uid: str = ZERO_UID
    recipient: str = ZERO_ADDRESS
    attester: str = ZERO_ADDRESS
    revocable: bool = False
    data: bytes = b""

    @property
    def exists(self) -> bool:
        """EAS returns a zeroed struct for unknown UIDs."""
        return bool(self.uid) and self.uid.lower() != ZERO_UID and self.schema.lower() != ZERO_UID

    @classmethod
    def from_struct(cls, struct: Any) -> "AttestationRecord":
        """Build from the tuple returned by getAttestation."""
        (uid, schema, time_, expiration_time, revocation_time,
         ref_uid, recipient, attester, revocable, data) = struct
        return cls(
            uid=_hex32(uid),
            schema=_hex32(schema),
            time=int(time_),
            expiration_time=int(expiration_time),
            revocation_time=int(revocation_time),
            ref_uid=_hex32(ref_uid),
            recipient=str(recipient),
            attester=str(attester),
            revocable=bool(revocable),
            data=bytes(data),
        )


@dataclass(frozen=True)
class AttestationRequestData:
    """The `data` member of an EAS AttestationRequest."""
    data: bytes
    recipient: str = ZERO_ADDRESS
    expiration_time: int = 0
    revocable: bool = False
    ref_uid: str = ZERO_UID
    value: int = 0

    def as_tuple(self) -> tuple:
        return (
            to_checksum_address(self.recipient),
            self.expiration_time,
            self.revocable,
            to_bytes(hexstr=self.ref_uid),
            self.data,
            self.value,
        )


@dataclass(frozen=True)
class SubmittedAttestation:
    """A confirmed attestation transaction."""
    uid: str
    tx_hash: Optional[str]
    block_number: Optional[int]


class LedgerError(Exception):
    """Ledger read or write failed.

    `reason` carries the revert reason when the contract reverted, otherwise
    the transport error message.
    """

    def __init__(self, message: str, reason: Optional[str] = None):
        self.reason = reason or message
        super().__init__(message)


class EASLedger:
    """One EAS contract on one chain, optionally with a signing key."""

    def __init__(
        self,
        chain_id: int,
        eas_contract: str,
        rpc_url: str,
        private_key: Optional[str] = None,
    ):
        self.chain_id = chain_id
        self.eas_contract = to_checksum_address(eas_contract)
        self._w3 = AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=LEDGER_RPC_TIMEOUT_SECONDS)},
            )
        )
        self._contract = self._w3.eth.contract(address=self.eas_contract, abi=EAS_ABI)
        self._account = self._w3.eth.account.from_key(private_key) if private_key else None

    @property
    def signer_address(self) -> Optional[str]:
        return self._account.address if self._account else None

    async def get_attestation(self, uid: str) -> AttestationRecord:
        """Fetch an attestation by UID.

        Raises:
            LedgerError: On RPC or decoding failure.
        """
        try:
            struct = await self._contract.functions.getAttestation(to_bytes(hexstr=uid)).call()
        except (Web3Exception, aiohttp.ClientError, OSError, ValueError) as e:
            raise LedgerError(f"getAttestation({uid}) failed on chain {self.chain_id}: {e}") from e
        return AttestationRecord.from_struct(struct)

    async def attest(self, schema_uid: str, request: AttestationRequestData) -> SubmittedAttestation:
        """Sign, submit and confirm an attestation.

        Raises:
            LedgerError: When no key is configured, the call reverts, the
                receipt times out or reports failure, or no Attested event
                is present.
        """
        if self._account is None:
            raise LedgerError("No signing key configured for ledger writes")

        call = self._contract.functions.attest((to_bytes(hexstr=schema_uid), request.as_tuple()))
        sender = self._account.address

        try:
            nonce = await self._w3.eth.get_transaction_count(sender, "pending")
            tx = await call.build_transaction(
                {"from": sender, "nonce": nonce, "chainId": self.chain_id, "value": request.value}
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=RECEIPT_TIMEOUT_SECONDS
            )
        except ContractLogicError as e:
            reason = getattr(e, "message", None) or str(e)
            raise LedgerError(f"attest reverted: {reason}", reason=reason) from e
        except TimeExhausted as e:
            raise LedgerError(f"attest receipt not received within {RECEIPT_TIMEOUT_SECONDS}s") from e
        except (Web3Exception, aiohttp.ClientError, OSError, ValueError) as e:
            raise LedgerError(f"attest failed: {e}") from e

        tx_hash_hex = _hex32(receipt.get("transactionHash", tx_hash))
        if receipt.get("status") != 1:
            raise LedgerError(f"attest transaction {tx_hash_hex} failed", reason="transaction reverted")

        events = self._contract.events.Attested().process_receipt(receipt, errors=DISCARD)
        if not events:
            raise LedgerError(f"No Attested event in receipt for {tx_hash_hex}")

        uid = _hex32(events[0]["args"]["uid"])
        block_number = receipt.get("blockNumber")
        log.info(f"attestation_confirmed uid={uid} tx={tx_hash_hex} block={block_number}")
        return SubmittedAttestation(
            uid=uid,
            tx_hash=tx_hash_hex,
            block_number=int(block_number) if block_number is not None else None,
        )


def get_ledger(chain_id: int, eas_contract: str, private_key: Optional[str] = None) -> EASLedger:
    """Build a ledger client for an approved chain.

    Raises:
        LedgerError: If no RPC URL is configured for the chain.
    """
    try:
        rpc_url = get_rpc_url(chain_id)
    except KeyError as e:
        raise LedgerError(str(e.args[0])) from e
    return EASLedger(chain_id, eas_contract, rpc_url, private_key=private_key)
