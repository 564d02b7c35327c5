"""Server-held issuer key for signing witness attestations.

Priority:
1. ISSUER_PRIVATE_KEY environment variable (deployments)
2. Key file at ISSUER_KEY_FILE, default ~/.ssh/local-attestation-key (local dev)
"""

import logging
import os
import re
from pathlib import Path
from typing import Optional

from app.core import config

log = logging.getLogger("witness.issuer_key")

_PRIVATE_KEY_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


class IssuerKeyError(Exception):
    """Issuer key is missing or malformed."""


def _normalize(raw: str) -> str:
    key = "".join(raw.split())
    return key if key.startswith("0x") else f"0x{key}"


def load_issuer_private_key(key_file: Optional[Path] = None) -> str:
    """Load the issuer private key as 0x + 64 hex chars.

    Raises:
        IssuerKeyError: If no key is configured or its format is invalid.
    """
    env_key = os.getenv("ISSUER_PRIVATE_KEY", "").strip()
    if env_key:
        private_key = _normalize(env_key)
        if not _PRIVATE_KEY_PATTERN.match(private_key):
            raise IssuerKeyError(
                f"Invalid ISSUER_PRIVATE_KEY format. Expected 0x + 64 hex chars, "
                f"got: {len(private_key)} chars"
            )
        log.debug("Using ISSUER_PRIVATE_KEY from environment")
        return private_key

    path = key_file or config.ISSUER_KEY_FILE
    if not path.is_file():
        raise IssuerKeyError(
            f"No private key found. Set ISSUER_PRIVATE_KEY or create {path} "
            f"containing a 0x-prefixed 32-byte hex key (chmod 600)"
        )

    private_key = _normalize(path.read_text(encoding="utf-8")).lower()
    if not _PRIVATE_KEY_PATTERN.match(private_key):
        raise IssuerKeyError(
            f"Invalid private key format in {path}. Expected 0x + 64 hex chars, "
            f"got: {len(private_key)} chars"
        )
    log.debug(f"Loaded private key from {path}")
    return private_key
