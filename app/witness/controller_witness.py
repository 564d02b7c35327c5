"""Controller witness orchestration.

Runs one request through:

    Validated -> CacheChecked -> Gated -> Decoded&Matched
              -> EvidenceConfirmed -> Submitted -> Done

A cache hit goes straight to Done with existing=True. Any failure raises
WitnessError immediately; nothing is written to the ledger or the cache
unless every earlier step passed.
"""

import logging
from typing import Optional

from app.witness.allowlist import verify_allowlists
from app.witness.api_models import WitnessResult
from app.witness.attestation_reader import verify_target_attestation
from app.witness.cache import WitnessCache, get_witness_cache
from app.witness.evidence import verify_controller_evidence
from app.witness.request import WitnessRequest
from app.witness.submitter import submit_witness_attestation

log = logging.getLogger("witness.controller_witness")


async def submit_controller_witness_attestation(
    request: WitnessRequest,
    cache: Optional[WitnessCache] = None,
) -> WitnessResult:
    """Verify a controller claim and issue (or return) its witness attestation.

    Args:
        request: Validated witness request.
        cache: Witness cache; the process singleton when None.

    Returns:
        WitnessResult; existing=True when the pair was already witnessed.

    Raises:
        WitnessError: From whichever step failed.
    """
    if cache is None:
        cache = get_witness_cache()

    async with cache.claim(request.subject, request.controller):
        existing = cache.lookup(request.subject, request.controller)
        if existing is not None:
            log.info(f"witness_cache_hit uid={existing.uid}")
            return WitnessResult(
                success=True,
                uid=existing.uid,
                tx_hash=None,
                block_number=None,
                observed_at=existing.observed_at,
                existing=True,
            )

        schema = verify_allowlists(request.chain_id, request.eas_contract, request.schema_uid)

        await verify_target_attestation(request, schema)

        await verify_controller_evidence(request.subject, request.controller, request.method)

        return await submit_witness_attestation(request, cache=cache)
