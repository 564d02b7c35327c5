"""Controller witness request validation.

Turns an untyped JSON body into an immutable WitnessRequest. Presence is
checked for every field first so a caller sees all missing fields at once;
format checks then stop at the first failure.
"""

import re
from dataclasses import dataclass
from typing import Any, List, Mapping

from app.witness.did import DID_PATTERN
from app.witness.evidence.models import EvidenceMethod
from app.witness.exceptions import WitnessError

HEX_32_BYTES = re.compile(r"^0x[0-9a-fA-F]{64}$")
HEX_20_BYTES = re.compile(r"^0x[0-9a-fA-F]{40}$")

REQUIRED_FIELDS = (
    "attestationUid",
    "chainId",
    "easContract",
    "schemaUid",
    "subject",
    "controller",
    "method",
)


@dataclass(frozen=True)
class WitnessRequest:
    """A validated controller witness request."""
    attestation_uid: str
    chain_id: int
    eas_contract: str
    schema_uid: str
    subject: str
    controller: str
    method: EvidenceMethod

    def log_fields(self) -> dict:
        """Request fields for the structured request log line."""
        return {
            "subject": self.subject,
            "controller": self.controller,
            "method": self.method.value,
            "chain_id": self.chain_id,
            "eas_contract": self.eas_contract,
            "schema_uid": self.schema_uid,
            "attestation_uid": self.attestation_uid,
        }


def _is_missing(name: str, value: Any) -> bool:
    if value is None:
        return True
    # chainId 0 is present but invalid; other empty strings count as missing
    return name != "chainId" and value == ""


def _as_chain_id(value: Any) -> int:
    # bool is an int subclass but never a chain id
    if isinstance(value, bool):
        raise ValueError("boolean")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError("fractional")
        value = int(value)
    if not isinstance(value, int) or value <= 0:
        raise ValueError("not a positive integer")
    return value


def validate_params(body: Any) -> WitnessRequest:
    """Validate a raw request body.

    Args:
        body: Decoded JSON body.

    Returns:
        WitnessRequest with all fields checked.

    Raises:
        WitnessError: MISSING_FIELDS, INVALID_SUBJECT, INVALID_CONTROLLER
            or INVALID_METHOD.
    """
    if not isinstance(body, Mapping):
        raise WitnessError.missing_fields(
            f"Missing required fields: {', '.join(REQUIRED_FIELDS)}"
        )

    missing: List[str] = [f for f in REQUIRED_FIELDS if _is_missing(f, body.get(f))]
    if missing:
        raise WitnessError.missing_fields(f"Missing required fields: {', '.join(missing)}")

    attestation_uid = body["attestationUid"]
    if not isinstance(attestation_uid, str) or not HEX_32_BYTES.match(attestation_uid):
        raise WitnessError.missing_fields(
            "attestationUid must be a 0x-prefixed 32-byte hex string"
        )

    try:
        chain_id = _as_chain_id(body["chainId"])
    except ValueError:
        raise WitnessError.missing_fields("chainId must be a positive integer")

    eas_contract = body["easContract"]
    if not isinstance(eas_contract, str) or not HEX_20_BYTES.match(eas_contract):
        raise WitnessError.missing_fields(
            "easContract must be a 0x-prefixed 20-byte hex string"
        )

    schema_uid = body["schemaUid"]
    if not isinstance(schema_uid, str) or not HEX_32_BYTES.match(schema_uid):
        raise WitnessError.missing_fields(
            "schemaUid must be a 0x-prefixed 32-byte hex string"
        )

    subject = body["subject"]
    if not isinstance(subject, str) or not DID_PATTERN.match(subject):
        raise WitnessError.invalid_subject("subject must be a valid DID (did:<method>:<id>)")

    controller = body["controller"]
    if not isinstance(controller, str) or not DID_PATTERN.match(controller):
        raise WitnessError.invalid_controller(
            "controller must be a valid DID (did:<method>:<id>)"
        )

    method = body["method"]
    if not isinstance(method, str) or method not in EvidenceMethod.values():
        raise WitnessError.invalid_method(
            f"method must be one of: {', '.join(EvidenceMethod.values())}"
        )

    return WitnessRequest(
        attestation_uid=attestation_uid,
        chain_id=chain_id,
        eas_contract=eas_contract,
        schema_uid=schema_uid,
        subject=subject,
        controller=controller,
        method=EvidenceMethod(method),
    )
