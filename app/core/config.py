"""
Controller witness service configuration constants.

Constants are organized into:
- PROTOCOL: Fixed values of the evidence and ledger formats
- ALLOWLISTS: Chains, contracts and attesters the witness accepts
- POLICY: Timeouts and size limits for outbound calls
- OPERATIONAL: Deployment-specific settings (env vars)
"""

import os
from pathlib import Path
from typing import Dict, List

# =============================================================================
# PROTOCOL CONSTANTS
# =============================================================================

# EAS returns a zeroed struct for unknown UIDs instead of reverting
ZERO_UID: str = "0x" + "0" * 64

ZERO_ADDRESS: str = "0x" + "0" * 40

# DNS TXT evidence lives at <prefix>.<domain>
DNS_TXT_PREFIX: str = "_omatrust"

# Hosted DID document location for did:web subjects
DID_DOC_PATH: str = "/.well-known/did.json"

# Registry id of the schema this service issues
CONTROLLER_WITNESS_SCHEMA_ID: str = "controller-witness"


# =============================================================================
# ALLOWLISTS
# =============================================================================

# OMAchain testnet
OMACHAIN_TESTNET_CHAIN_ID: int = 66238
OMACHAIN_TESTNET_RPC_URL: str = "https://rpc.testnet.chain.oma3.org/"
OMACHAIN_TESTNET_EAS_CONTRACT: str = "0x4200000000000000000000000000000000000021"


def _parse_chain_map(env_name: str, default: Dict[int, str]) -> Dict[int, str]:
    """Parse a `chainId=value` comma-separated map from environment.

    Environment variable format:
        WITNESS_APPROVED_CHAINS=66238=0x4200...0021,6623=0xabc...

    Entries without `=` or with a non-integer chain id are ignored.

    Returns:
        dict of chain id to value, or the default when the variable is unset.
    """
    env_value = os.getenv(env_name, "")
    if not env_value:
        return dict(default)
    result: Dict[int, str] = {}
    for item in env_value.split(","):
        chain, sep, value = item.strip().partition("=")
        if not sep or not value.strip():
            continue
        try:
            result[int(chain.strip())] = value.strip()
        except ValueError:
            continue
    return result


def _parse_attesters() -> Dict[int, List[str]]:
    """Parse approved witness attesters per chain from environment.

    Environment variable format:
        WITNESS_APPROVED_ATTESTERS=66238=0xaaa|0xbbb;6623=0xccc

    Returns:
        dict of chain id to list of attester addresses.
    """
    env_value = os.getenv("WITNESS_APPROVED_ATTESTERS", "")
    if not env_value:
        return {
            OMACHAIN_TESTNET_CHAIN_ID: [
                "0x7D5beD223Bc343F114Aa28961Cc447dbbc9c2330",
                "0x766910dc543034ce7a6525c1307c5b6fe92ebb0b",
            ],
        }
    result: Dict[int, List[str]] = {}
    for item in env_value.split(";"):
        chain, sep, addresses = item.strip().partition("=")
        if not sep:
            continue
        try:
            chain_id = int(chain.strip())
        except ValueError:
            continue
        result[chain_id] = [a.strip() for a in addresses.split("|") if a.strip()]
    return result


# chainId -> EAS contract address accepted for witness requests
APPROVED_WITNESS_CHAINS: Dict[int, str] = _parse_chain_map(
    "WITNESS_APPROVED_CHAINS",
    {OMACHAIN_TESTNET_CHAIN_ID: OMACHAIN_TESTNET_EAS_CONTRACT},
)

# chainId -> addresses allowed to sign controller-witness attestations
APPROVED_CONTROLLER_WITNESS_ATTESTERS: Dict[int, List[str]] = _parse_attesters()

# chainId -> JSON-RPC endpoint
CHAIN_RPC_URLS: Dict[int, str] = _parse_chain_map(
    "WITNESS_RPC_URLS",
    {OMACHAIN_TESTNET_CHAIN_ID: OMACHAIN_TESTNET_RPC_URL},
)


def get_rpc_url(chain_id: int) -> str:
    """Return the RPC URL for a chain.

    Raises:
        KeyError: If no RPC endpoint is configured for the chain.
    """
    try:
        return CHAIN_RPC_URLS[chain_id]
    except KeyError:
        raise KeyError(f"No RPC URL configured for chain {chain_id}") from None


# =============================================================================
# POLICY CONSTANTS
# =============================================================================

# Evidence lookups (DNS TXT and did.json) share one bound
EVIDENCE_FETCH_TIMEOUT_SECONDS: float = float(
    os.getenv("WITNESS_EVIDENCE_TIMEOUT", "10.0")
)
DID_DOC_MAX_SIZE_BYTES: int = 262_144  # 256 KiB
DID_DOC_MAX_REDIRECTS: int = 3

# Ledger reads and writes
LEDGER_RPC_TIMEOUT_SECONDS: float = float(os.getenv("WITNESS_RPC_TIMEOUT", "15.0"))
RECEIPT_TIMEOUT_SECONDS: float = float(os.getenv("WITNESS_RECEIPT_TIMEOUT", "120.0"))


# =============================================================================
# OPERATIONAL SETTINGS (deployment-specific, via environment variables)
# =============================================================================

# Optional JSON file replacing the built-in schema registry
SCHEMA_REGISTRY_FILE: str = os.getenv("WITNESS_SCHEMA_REGISTRY_FILE", "")

# Local development fallback when ISSUER_PRIVATE_KEY is unset
ISSUER_KEY_FILE: Path = Path(
    os.getenv("ISSUER_KEY_FILE", str(Path.home() / ".ssh" / "local-attestation-key"))
)

# Controls whether /admin returns configuration data
ADMIN_ENDPOINT_ENABLED: bool = os.getenv("ADMIN_ENDPOINT_ENABLED", "true").lower() == "true"
