"""Off-chain evidence for controller witness claims.

Sources:
- dns-txt: `_omatrust.<domain>` TXT records
- did-json: `https://<domain>/.well-known/did.json`
"""

from .models import EvidenceChecker, EvidenceMethod, EvidenceResult
from .parser import ParsedEvidenceRecord, parse_evidence_string
from .dns_txt import DnsTxtChecker, find_controller_in_dns_txt
from .did_json import DidJsonChecker, DidDocFetchError, find_controller_in_did_doc
from .verifier import EVIDENCE_CHECKERS, verify_controller_evidence

__all__ = [
    # Models
    "EvidenceChecker",
    "EvidenceMethod",
    "EvidenceResult",
    # Parsing
    "ParsedEvidenceRecord",
    "parse_evidence_string",
    # Sources
    "DnsTxtChecker",
    "find_controller_in_dns_txt",
    "DidJsonChecker",
    "DidDocFetchError",
    "find_controller_in_did_doc",
    # Dispatch
    "EVIDENCE_CHECKERS",
    "verify_controller_evidence",
]
