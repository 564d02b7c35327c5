"""Attestation reader gate.

Proves that the ledger itself asserts the claimed subject <-> controller
relationship: the referenced attestation must exist, use the claimed schema,
be unrevoked, and decode to exactly the requested subject and controller.
"""

import logging

from app.witness.encoding import SchemaEncoder
from app.witness.exceptions import WitnessError
from app.witness.ledger import LedgerError, get_ledger
from app.witness.request import WitnessRequest
from app.witness.schema_registry import SchemaDescriptor

log = logging.getLogger("witness.attestation_reader")


async def verify_target_attestation(request: WitnessRequest, schema: SchemaDescriptor) -> None:
    """Check the referenced attestation against the request.

    Args:
        request: Validated witness request.
        schema: Witness-enabled descriptor resolved by the allowlist gate.

    Raises:
        WitnessError: ATTESTATION_NOT_FOUND, FIELDS_MISMATCH,
            ATTESTATION_REVOKED or SERVER_ERROR.
    """
    if schema.witness is None:
        raise WitnessError.schema_not_approved(request.schema_uid)

    try:
        ledger = get_ledger(request.chain_id, request.eas_contract)
    except LedgerError as e:
        raise WitnessError.server_error(f"Ledger not configured: {e}")

    try:
        attestation = await ledger.get_attestation(request.attestation_uid)
    except LedgerError as e:
        log.info(f"attestation lookup failed uid={request.attestation_uid}: {e}")
        raise WitnessError.attestation_not_found(request.attestation_uid, request.chain_id)

    if not attestation.exists:
        raise WitnessError.attestation_not_found(request.attestation_uid, request.chain_id)

    if attestation.schema.lower() != request.schema_uid.lower():
        raise WitnessError.fields_mismatch(
            f"Attestation schema {attestation.schema} does not match "
            f"claimed schema {request.schema_uid}"
        )

    if attestation.revocation_time != 0:
        raise WitnessError.attestation_revoked(request.attestation_uid)

    if not schema.eas_schema_string:
        raise WitnessError.server_error(
            f"No EAS schema string configured for schema {schema.id} ({request.schema_uid})"
        )

    try:
        fields = SchemaEncoder(schema.eas_schema_string).decode_to_fields(attestation.data)
    except ValueError as e:
        raise WitnessError.server_error(f"Failed to decode attestation data: {e}")

    on_chain_subject = fields.get(schema.witness.subject_field)
    on_chain_controller = fields.get(schema.witness.controller_field)

    if on_chain_subject != request.subject:
        raise WitnessError.fields_mismatch(
            f'Subject mismatch: attestation has "{on_chain_subject}", '
            f'request has "{request.subject}"'
        )
    if on_chain_controller != request.controller:
        raise WitnessError.fields_mismatch(
            f'Controller mismatch: attestation has "{on_chain_controller}", '
            f'request has "{request.controller}"'
        )
