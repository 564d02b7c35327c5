"""
Controller witness API models.

Wire names are camelCase to match the JSON contract of
POST /api/controller-witness; Python attributes are snake_case.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Models
# =============================================================================

class ErrorCode:
    """Error code registry (11 codes)"""
    # Request layer
    MISSING_FIELDS = "MISSING_FIELDS"
    INVALID_SUBJECT = "INVALID_SUBJECT"
    INVALID_CONTROLLER = "INVALID_CONTROLLER"
    INVALID_METHOD = "INVALID_METHOD"

    # Allowlist layer
    CHAIN_NOT_APPROVED = "CHAIN_NOT_APPROVED"
    SCHEMA_NOT_APPROVED = "SCHEMA_NOT_APPROVED"

    # Ledger layer
    ATTESTATION_NOT_FOUND = "ATTESTATION_NOT_FOUND"
    ATTESTATION_REVOKED = "ATTESTATION_REVOKED"
    FIELDS_MISMATCH = "FIELDS_MISMATCH"

    # Evidence layer
    EVIDENCE_NOT_FOUND = "EVIDENCE_NOT_FOUND"

    # Server layer
    SERVER_ERROR = "SERVER_ERROR"


# HTTP status for each error code
ERROR_HTTP_STATUS: Dict[str, int] = {
    ErrorCode.MISSING_FIELDS: 400,
    ErrorCode.INVALID_SUBJECT: 400,
    ErrorCode.INVALID_CONTROLLER: 400,
    ErrorCode.INVALID_METHOD: 400,
    ErrorCode.CHAIN_NOT_APPROVED: 403,
    ErrorCode.SCHEMA_NOT_APPROVED: 403,
    ErrorCode.ATTESTATION_NOT_FOUND: 404,
    ErrorCode.EVIDENCE_NOT_FOUND: 404,
    ErrorCode.ATTESTATION_REVOKED: 409,
    ErrorCode.FIELDS_MISMATCH: 422,
    ErrorCode.SERVER_ERROR: 500,
}


class ErrorResponse(BaseModel):
    """Error body returned by the witness route."""
    model_config = ConfigDict(populate_by_name=True)

    code: str
    message: str
    http_status: int = Field(alias="httpStatus")
    elapsed: Optional[str] = None


# =============================================================================
# Response Models
# =============================================================================

class WitnessResult(BaseModel):
    """Outcome of a controller witness request.

    `existing` is True when the (subject, controller) pair was already
    witnessed by this process; tx_hash and block_number are then None.
    """
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    uid: str
    tx_hash: Optional[str] = Field(default=None, alias="txHash")
    block_number: Optional[int] = Field(default=None, alias="blockNumber")
    observed_at: int = Field(alias="observedAt")
    existing: bool = False


class WitnessResponse(WitnessResult):
    """Success body returned by the witness route."""
    elapsed: str
