"""Witness attestation submitter.

Encodes {subject, controller, method, observedAt} under the
controller-witness schema, signs with the issuer key and submits to the
requested EAS contract. Every precondition is checked before anything is
sent, so a misconfigured server never produces a partial submission.
"""

import logging
import time
from typing import Optional

from app.core import config
from app.witness.api_models import WitnessResult
from app.witness.cache import WitnessCache, get_witness_cache
from app.witness.encoding import SchemaEncoder
from app.witness.exceptions import WitnessError
from app.witness.issuer_key import IssuerKeyError, load_issuer_private_key
from app.witness.ledger import AttestationRequestData, LedgerError, get_ledger
from app.witness.request import WitnessRequest
from app.witness.schema_registry import get_schema

log = logging.getLogger("witness.submitter")


def build_witness_payload(request: WitnessRequest, observed_at: int) -> dict:
    return {
        "subject": request.subject,
        "controller": request.controller,
        "method": request.method.value,
        "observedAt": observed_at,
    }


def _check_attester(chain_id: int, address: Optional[str]) -> None:
    approved = {a.lower() for a in config.APPROVED_CONTROLLER_WITNESS_ATTESTERS.get(chain_id, [])}
    if address and address.lower() not in approved:
        log.warning(
            f"issuer {address} is not an approved controller witness attester on chain {chain_id}"
        )


async def submit_witness_attestation(
    request: WitnessRequest,
    cache: Optional[WitnessCache] = None,
) -> WitnessResult:
    """Issue the witness attestation for a fully verified request.

    On success the issued UID is recorded in the witness cache exactly once
    before returning.

    Raises:
        WitnessError: SERVER_ERROR for a missing/undeployed witness schema,
            missing schema string, missing/invalid issuer key, or any
            submission/receipt failure (with the revert reason).
    """
    cw_schema = get_schema(config.CONTROLLER_WITNESS_SCHEMA_ID)
    schema_uid = cw_schema.deployed_uid(request.chain_id) if cw_schema else None
    if not schema_uid:
        raise WitnessError.server_error(
            f"Controller-witness schema not deployed on chain {request.chain_id}"
        )
    if not cw_schema.eas_schema_string:
        raise WitnessError.server_error("Controller-witness EAS schema string not configured")

    try:
        private_key = load_issuer_private_key()
    except IssuerKeyError as e:
        raise WitnessError.server_error(f"Issuer key not configured: {e}")

    try:
        ledger = get_ledger(request.chain_id, request.eas_contract, private_key=private_key)
    except (LedgerError, ValueError) as e:
        raise WitnessError.server_error(f"Ledger not configured: {e}")

    observed_at = int(time.time())
    try:
        encoded = SchemaEncoder(cw_schema.eas_schema_string).encode_data(
            build_witness_payload(request, observed_at)
        )
    except ValueError as e:
        raise WitnessError.server_error(f"Cannot encode witness attestation: {e}")

    _check_attester(request.chain_id, ledger.signer_address)

    try:
        submitted = await ledger.attest(schema_uid, AttestationRequestData(data=encoded))
    except LedgerError as e:
        raise WitnessError.server_error(f"EAS attestation submission failed: {e.reason}")

    if cache is None:
        cache = get_witness_cache()
    cache.record(
        request.subject,
        request.controller,
        submitted.uid,
        ledger.signer_address or "",
        observed_at,
    )
    log.info(f"witness_attestation_submitted uid={submitted.uid} tx={submitted.tx_hash}")

    return WitnessResult(
        success=True,
        uid=submitted.uid,
        tx_hash=submitted.tx_hash,
        block_number=submitted.block_number,
        observed_at=observed_at,
        existing=False,
    )
