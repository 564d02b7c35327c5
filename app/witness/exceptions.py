"""
Controller witness exceptions.
Maps gate, evidence and submission failures to structured error codes.
"""

from app.witness.api_models import ERROR_HTTP_STATUS, ErrorCode


class WitnessError(Exception):
    """Exception for every expected controller witness failure.

    Carries an error code from ErrorCode; the HTTP status is derived
    from ERROR_HTTP_STATUS. The route converts this to ErrorResponse.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        self.http_status = ERROR_HTTP_STATUS.get(code, 500)
        super().__init__(message)

    def __repr__(self) -> str:
        return f"WitnessError(code={self.code!r}, message={self.message!r})"

    @classmethod
    def missing_fields(cls, reason: str) -> "WitnessError":
        """Factory for MISSING_FIELDS error.

        Used both for absent fields and for malformed hex/integer fields.
        """
        return cls(code=ErrorCode.MISSING_FIELDS, message=reason)

    @classmethod
    def invalid_subject(cls, reason: str) -> "WitnessError":
        return cls(code=ErrorCode.INVALID_SUBJECT, message=reason)

    @classmethod
    def invalid_controller(cls, reason: str) -> "WitnessError":
        return cls(code=ErrorCode.INVALID_CONTROLLER, message=reason)

    @classmethod
    def invalid_method(cls, reason: str) -> "WitnessError":
        return cls(code=ErrorCode.INVALID_METHOD, message=reason)

    @classmethod
    def chain_not_approved(cls, reason: str) -> "WitnessError":
        return cls(code=ErrorCode.CHAIN_NOT_APPROVED, message=reason)

    @classmethod
    def schema_not_approved(cls, schema_uid: str) -> "WitnessError":
        return cls(
            code=ErrorCode.SCHEMA_NOT_APPROVED,
            message=f"Schema {schema_uid} is not a witness-enabled schema",
        )

    @classmethod
    def attestation_not_found(cls, uid: str, chain_id: int) -> "WitnessError":
        return cls(
            code=ErrorCode.ATTESTATION_NOT_FOUND,
            message=f"Attestation {uid} not found on chain {chain_id}",
        )

    @classmethod
    def attestation_revoked(cls, uid: str) -> "WitnessError":
        return cls(
            code=ErrorCode.ATTESTATION_REVOKED,
            message=f"Attestation {uid} has been revoked",
        )

    @classmethod
    def fields_mismatch(cls, reason: str) -> "WitnessError":
        """Factory for FIELDS_MISMATCH error.

        Used for:
        - Attestation schema differs from the claimed schemaUid
        - Decoded subject or controller differs from the request
        """
        return cls(code=ErrorCode.FIELDS_MISMATCH, message=reason)

    @classmethod
    def evidence_not_found(cls, reason: str) -> "WitnessError":
        return cls(code=ErrorCode.EVIDENCE_NOT_FOUND, message=reason)

    @classmethod
    def server_error(cls, reason: str) -> "WitnessError":
        """Factory for SERVER_ERROR.

        Used for server misconfiguration (missing key, undeployed schema,
        missing schema string), decode failures and ledger submission
        failures. The underlying reason is kept in the message.
        """
        return cls(code=ErrorCode.SERVER_ERROR, message=reason)
