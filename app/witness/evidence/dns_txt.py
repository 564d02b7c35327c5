"""DNS TXT evidence.

Queries `_omatrust.<domain>` and looks for a controller entry whose address
matches the expected controller.
"""

import logging
from typing import List

import dns.asyncresolver
import dns.exception
import dns.resolver

from app.core.config import DNS_TXT_PREFIX, EVIDENCE_FETCH_TIMEOUT_SECONDS
from app.witness.did import addresses_match

from .models import EvidenceChecker, EvidenceMethod, EvidenceResult
from .parser import parse_evidence_string

log = logging.getLogger("witness.evidence.dns")


async def resolve_txt(name: str, timeout: float = EVIDENCE_FETCH_TIMEOUT_SECONDS) -> List[str]:
    """Resolve TXT records for a name.

    Each record's character strings are concatenated, since long values are
    split into 255-byte chunks on the wire.

    Returns:
        One string per TXT record. Empty when the name has no TXT records.

    Raises:
        dns.exception.DNSException: On NXDOMAIN, timeout or resolver failure.
    """
    try:
        answer = await dns.asyncresolver.resolve(name, "TXT", lifetime=timeout)
    except dns.resolver.NoAnswer:
        return []
    return [
        b"".join(rdata.strings).decode("utf-8", errors="replace")
        for rdata in answer
    ]


async def find_controller_in_dns_txt(domain: str, expected_controller: str) -> EvidenceResult:
    """Look for the expected controller in `_omatrust.<domain>` TXT records.

    Args:
        domain: Bare domain (e.g. "example.com"), not a DID.
        expected_controller: DID or address to match against.

    Returns:
        EvidenceResult; found=False carries a diagnostic describing what was
        found instead.
    """
    record_name = f"{DNS_TXT_PREFIX}.{domain}"

    try:
        records = await resolve_txt(record_name)
    except dns.exception.DNSException as e:
        return EvidenceResult(
            found=False,
            details=f"DNS lookup failed for {record_name}: {e.__class__.__name__}: {e}",
        )

    if not records:
        return EvidenceResult(found=False, details=f"No TXT records found at {record_name}")

    all_controllers: List[str] = []
    for text in records:
        parsed = parse_evidence_string(text)
        if parsed is None:
            continue
        for controller in parsed.controllers:
            all_controllers.append(controller)
            if addresses_match(controller, expected_controller):
                log.debug(f"dns evidence matched {controller} at {record_name}")
                return EvidenceResult(found=True, matched_controller=controller)

    if not all_controllers:
        return EvidenceResult(
            found=False,
            details=f"TXT records at {record_name} found but no controller entries",
        )

    return EvidenceResult(
        found=False,
        details=(
            f"Controllers [{', '.join(all_controllers)}] in {record_name} "
            f"do not match expected {expected_controller}"
        ),
    )


class DnsTxtChecker(EvidenceChecker):
    method = EvidenceMethod.DNS_TXT

    async def find(self, domain: str, expected_controller: str) -> EvidenceResult:
        return await find_controller_in_dns_txt(domain, expected_controller)
