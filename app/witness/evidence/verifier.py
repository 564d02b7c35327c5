"""Evidence verification dispatch.

Every supported method needs a did:web subject, since the evidence lives
under the subject's domain.
"""

import logging
from typing import Dict, Union

from app.witness.did import get_domain_from_did_web
from app.witness.exceptions import WitnessError

from .did_json import DidJsonChecker
from .dns_txt import DnsTxtChecker
from .models import EvidenceChecker, EvidenceMethod, EvidenceResult

log = logging.getLogger("witness.evidence")

# One checker per EvidenceMethod variant
EVIDENCE_CHECKERS: Dict[EvidenceMethod, EvidenceChecker] = {
    EvidenceMethod.DNS_TXT: DnsTxtChecker(),
    EvidenceMethod.DID_JSON: DidJsonChecker(),
}


async def verify_controller_evidence(
    subject: str,
    controller: str,
    method: Union[EvidenceMethod, str],
) -> EvidenceResult:
    """Confirm the controller through the subject's off-chain evidence.

    Args:
        subject: Subject DID; must be did:web.
        controller: Controller DID or address expected in the evidence.
        method: Evidence method tag.

    Returns:
        EvidenceResult with found=True.

    Raises:
        WitnessError: INVALID_METHOD for an unknown method, INVALID_SUBJECT
            when the subject carries no domain, EVIDENCE_NOT_FOUND when the
            evidence is absent, mismatched or unreachable.
    """
    try:
        evidence_method = EvidenceMethod(method)
    except ValueError:
        raise WitnessError.invalid_method(f"Unsupported evidence method: {method}")

    checker = EVIDENCE_CHECKERS[evidence_method]

    domain = get_domain_from_did_web(subject)
    if not domain:
        raise WitnessError.invalid_subject(
            f'Cannot extract domain from subject "{subject}" - '
            f"{evidence_method.value} method requires a did:web subject"
        )

    result = await checker.find(domain, controller)
    if not result.found:
        raise WitnessError.evidence_not_found(
            result.details
            or f"Controller evidence not found via {evidence_method.value} for {domain}"
        )

    log.info(
        f"evidence_confirmed method={evidence_method.value} domain={domain} "
        f"matched={result.matched_controller}"
    )
    return result
