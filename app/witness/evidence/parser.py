"""Evidence string parser for `_omatrust` DNS TXT records.

Record format:
    v=1;caip10=eip155:<chainId>:<address>
    v=1 controller=did:pkh:eip155:<chainId>:<address>

- Fields are separated by semicolons or whitespace
- Field order is not significant
- Unknown fields are ignored for forward compatibility
- `controller=` values must be DIDs; bare addresses are ignored
- `caip10=` values must be CAIP-10 account ids
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from app.witness.did import parse_caip10

_SEPARATORS = re.compile(r"[;\s]+")


@dataclass
class ParsedEvidenceRecord:
    version: str
    controllers: List[str] = field(default_factory=list)


def parse_evidence_string(text: str) -> Optional[ParsedEvidenceRecord]:
    """Parse a single evidence string.

    Returns:
        ParsedEvidenceRecord, or None if the string has no `v=1` marker.
    """
    entries = [e.strip() for e in _SEPARATORS.split(text) if e.strip()]

    if "v=1" not in entries:
        return None

    controllers: List[str] = []
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep:
            continue
        value = value.strip()
        if key == "controller" and value.startswith("did:"):
            controllers.append(value)
        elif key == "caip10" and parse_caip10(value) is not None:
            controllers.append(value)

    return ParsedEvidenceRecord(version="1", controllers=controllers)
