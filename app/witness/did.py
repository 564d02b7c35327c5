"""DID and CAIP-10 helpers.

Supports the two DID methods the witness works with:
- did:web:<domain>[:<path>...]   (subject, carries a domain)
- did:pkh:<namespace>:<chainId>:<address>   (controller, carries an address)

Addresses are compared at the address level: the same key controls the same
address regardless of chain id. Only the EVM (eip155) namespace is handled.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote

DID_PATTERN = re.compile(r"^did:[a-z0-9]+:.+$")
EVM_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


@dataclass(frozen=True)
class Caip10Account:
    """CAIP-10 account identifier `<namespace>:<chainId>:<address>`."""
    namespace: str
    chain_id: str
    address: str

    def __str__(self) -> str:
        return f"{self.namespace}:{self.chain_id}:{self.address}"


def is_valid_did(value: str) -> bool:
    return bool(DID_PATTERN.match(value))


def parse_caip10(value: str) -> Optional[Caip10Account]:
    """Parse a CAIP-10 account id, or return None if it is not one."""
    parts = value.strip().split(":")
    if len(parts) != 3 or not all(parts):
        return None
    return Caip10Account(namespace=parts[0], chain_id=parts[1], address=parts[2])


def get_domain_from_did_web(did: str) -> Optional[str]:
    """Extract the host from a did:web identifier.

    The first method-specific segment is the host; a port is percent-encoded
    (`did:web:example.com%3A8443`). Later `:`-separated segments are path
    components and are not part of the domain.

    Returns:
        Lowercased domain (with port if present), or None when the DID is
        not did:web or has no host.
    """
    if not did.startswith("did:web:"):
        return None
    host = did[len("did:web:"):].split(":")[0].split("/")[0]
    host = unquote(host).strip().lower().rstrip(".")
    return host or None


def get_address_from_did_pkh(did: str) -> Optional[str]:
    """Extract the account address from a did:pkh identifier."""
    if not did.startswith("did:pkh:"):
        return None
    account = parse_caip10(did[len("did:pkh:"):])
    return account.address if account else None


def extract_address(did_or_address: str) -> Optional[str]:
    """Extract the underlying EVM address from a DID, CAIP-10 id or raw address.

    Supports:
    - did:pkh:eip155:<chainId>:<address>
    - eip155:<chainId>:<address>
    - 0x-prefixed 20-byte hex address

    Returns:
        Lowercased address, or None when nothing address-like is present
        (e.g. did:key or a non-EVM namespace).
    """
    value = did_or_address.strip()
    if value.startswith("did:pkh:"):
        value = value[len("did:pkh:"):]
    elif value.startswith("did:"):
        return None

    account = parse_caip10(value)
    if account is not None:
        if account.namespace != "eip155":
            return None
        value = account.address

    if EVM_ADDRESS_PATTERN.match(value):
        return value.lower()
    return None


def addresses_match(a: str, b: str) -> bool:
    """Check if two DIDs or addresses refer to the same key holder."""
    addr_a = extract_address(a)
    addr_b = extract_address(b)
    if not addr_a or not addr_b:
        return False
    return addr_a == addr_b
