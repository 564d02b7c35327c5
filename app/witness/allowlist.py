"""Allowlist gate: approved chain + EAS contract, witness-enabled schema.

Pure in-memory lookups; nothing here touches the network.
"""

from app.core import config
from app.witness.exceptions import WitnessError
from app.witness.schema_registry import SchemaDescriptor, find_witness_schema


def check_approved_chain(chain_id: int, eas_contract: str) -> None:
    """Require the chain to be approved with exactly this EAS contract.

    Raises:
        WitnessError: CHAIN_NOT_APPROVED.
    """
    approved_contract = config.APPROVED_WITNESS_CHAINS.get(chain_id)
    if not approved_contract:
        raise WitnessError.chain_not_approved(
            f"Chain {chain_id} is not approved for controller witness attestations"
        )
    if approved_contract.lower() != eas_contract.lower():
        raise WitnessError.chain_not_approved(
            f"EAS contract {eas_contract} is not approved for chain {chain_id}"
        )


def resolve_witness_schema(schema_uid: str) -> SchemaDescriptor:
    """Resolve a witness-enabled schema by any of its deployed or prior UIDs.

    A schema qualifies only if it declares a witness field mapping; the
    chain the UID was deployed on does not matter here.

    Raises:
        WitnessError: SCHEMA_NOT_APPROVED.
    """
    schema = find_witness_schema(schema_uid)
    if schema is None:
        raise WitnessError.schema_not_approved(schema_uid)
    return schema


def verify_allowlists(chain_id: int, eas_contract: str, schema_uid: str) -> SchemaDescriptor:
    """Run both allowlist checks, chain first.

    Returns:
        The resolved SchemaDescriptor, used downstream for decoding.
    """
    check_approved_chain(chain_id, eas_contract)
    return resolve_witness_schema(schema_uid)
