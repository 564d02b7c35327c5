"""EAS schema registry for controller witness.

Read-only descriptors of the attestation schemas the witness understands:
where each schema is deployed, its EAS schema string, and, for schemas a
witness may corroborate, which decoded fields carry subject and controller.

Witness-enabled schemas:
- key-binding: subject + keyId
- linked-identifier: subject + linkedId

The controller-witness schema is the one this service issues; it has no
witness mapping of its own.

Deployments replace the built-in registry with a JSON file
(WITNESS_SCHEMA_REGISTRY_FILE) holding a list of descriptors in the same
shape as the wire aliases below.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.core.config import (
    CONTROLLER_WITNESS_SCHEMA_ID,
    OMACHAIN_TESTNET_CHAIN_ID,
    SCHEMA_REGISTRY_FILE,
    ZERO_UID,
)

log = logging.getLogger("witness.schema_registry")

# Registry version for tracking updates
SCHEMA_REGISTRY_VERSION = "1.1.0"


class WitnessFieldMapping(BaseModel):
    """Decoded field names that map to the request's subject and controller."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    subject_field: str = Field(alias="subjectField")
    controller_field: str = Field(alias="controllerField")


class SchemaDescriptor(BaseModel):
    """One attestation schema and its per-chain deployments."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str = ""
    deployed_uids: Dict[int, str] = Field(default_factory=dict, alias="deployedUIDs")
    prior_uids: Dict[int, List[str]] = Field(default_factory=dict, alias="priorUIDs")
    eas_schema_string: Optional[str] = Field(default=None, alias="easSchemaString")
    witness: Optional[WitnessFieldMapping] = None

    def deployed_uid(self, chain_id: int) -> Optional[str]:
        """Deployed UID on a chain, or None when absent or zero."""
        uid = self.deployed_uids.get(chain_id)
        if not uid or uid.lower() == ZERO_UID:
            return None
        return uid

    def matches_uid(self, schema_uid: str) -> bool:
        """True if schema_uid is a current (non-zero) or prior UID on any chain."""
        target = schema_uid.lower()
        if target == ZERO_UID:
            return False
        for uid in self.deployed_uids.values():
            if uid.lower() == target:
                return True
        for uids in self.prior_uids.values():
            if any(uid.lower() == target for uid in uids):
                return True
        return False


BUILTIN_SCHEMAS: List[SchemaDescriptor] = [
    SchemaDescriptor(
        id="key-binding",
        title="Key Binding",
        deployed_uids={
            OMACHAIN_TESTNET_CHAIN_ID: "0x807b38ce9aa23fdde4457de01db9c5e8d6ec7c8feebee242e52be70847b7b966",
        },
        prior_uids={
            # Original deployment, kept so existing attestations stay witnessable
            OMACHAIN_TESTNET_CHAIN_ID: [
                "0x290ce7f909a98f74d2356cf24102ac813555fa0bcd456f1bab17da2d92632e1d",
            ],
        },
        eas_schema_string=(
            "string subject,string keyId,string[] keyPurpose,"
            "uint256 issuedAt,uint256 effectiveAt,uint256 expiresAt"
        ),
        witness=WitnessFieldMapping(subject_field="subject", controller_field="keyId"),
    ),
    SchemaDescriptor(
        id="linked-identifier",
        title="Linked Identifier",
        deployed_uids={
            OMACHAIN_TESTNET_CHAIN_ID: "0xed79388b434965a35d50573b75f4bbd6e3bc7912103c4a6ac0aff6a510ccadac",
        },
        eas_schema_string=(
            "string subject,string linkedId,string method,uint256 issuedAt"
        ),
        witness=WitnessFieldMapping(subject_field="subject", controller_field="linkedId"),
    ),
    SchemaDescriptor(
        id=CONTROLLER_WITNESS_SCHEMA_ID,
        title="Controller Witness",
        # Not deployed on any chain yet; supply via WITNESS_SCHEMA_REGISTRY_FILE
        deployed_uids={},
        eas_schema_string=(
            "string subject,string controller,string method,uint256 observedAt"
        ),
    ),
]


def load_schema_registry(path: Union[str, Path]) -> List[SchemaDescriptor]:
    """Load schema descriptors from a JSON file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not a list of valid descriptors.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"Schema registry {path} must contain a JSON list")
    return [SchemaDescriptor.model_validate(item) for item in data]


_schemas: Optional[List[SchemaDescriptor]] = None


def get_all_schemas() -> List[SchemaDescriptor]:
    """Get the schema registry, loading it on first access."""
    global _schemas
    if _schemas is None:
        if SCHEMA_REGISTRY_FILE:
            _schemas = load_schema_registry(SCHEMA_REGISTRY_FILE)
            log.info(f"Loaded {len(_schemas)} schemas from {SCHEMA_REGISTRY_FILE}")
        else:
            _schemas = list(BUILTIN_SCHEMAS)
    return _schemas


def set_schema_registry(schemas: List[SchemaDescriptor]) -> None:
    """Replace the registry contents (used by tests and embedding callers)."""
    global _schemas
    _schemas = list(schemas)


def reset_schema_registry() -> None:
    """Reset the registry singleton so the next access reloads it."""
    global _schemas
    _schemas = None


def get_schema(schema_id: str) -> Optional[SchemaDescriptor]:
    for schema in get_all_schemas():
        if schema.id == schema_id:
            return schema
    return None


def find_witness_schema(schema_uid: str) -> Optional[SchemaDescriptor]:
    """Find the witness-enabled descriptor whose current or prior UID is schema_uid."""
    for schema in get_all_schemas():
        if schema.witness is not None and schema.matches_uid(schema_uid):
            return schema
    return None


def get_witness_enabled_schemas() -> List[SchemaDescriptor]:
    return [s for s in get_all_schemas() if s.witness is not None]
