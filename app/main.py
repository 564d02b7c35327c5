import json
import logging
import os
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.logging_config import configure_logging
from app.witness.api_models import ErrorCode, ErrorResponse, WitnessResponse
from app.witness.controller_witness import submit_controller_witness_attestation
from app.witness.exceptions import WitnessError
from app.witness.request import validate_params

configure_logging()
log = logging.getLogger("witness")

CONTROLLER_WITNESS_ROUTE = "/api/controller-witness"

app = FastAPI(title="Controller Witness", version="0.1.0")


@app.get("/healthz")
def healthz():
    return {"ok": True}


def _elapsed(start: float) -> str:
    return f"{int((time.time() - start) * 1000)}ms"


def _error_response(code: str, message: str, status: int, start: float) -> JSONResponse:
    body = ErrorResponse(code=code, message=message, http_status=status, elapsed=_elapsed(start))
    return JSONResponse(status_code=status, content=body.model_dump(by_alias=True))


@app.post(CONTROLLER_WITNESS_ROUTE)
async def controller_witness(request: Request):
    """Verify a controller claim and issue a controller-witness attestation.

    Thin HTTP wrapper around submit_controller_witness_attestation(). Emits
    exactly one structured log line per request.
    """
    start = time.time()

    # Fields for the structured log line, populated progressively
    log_fields: Dict[str, Any] = {
        "subject": None,
        "controller": None,
        "method": None,
        "chain_id": None,
        "eas_contract": None,
        "schema_uid": None,
        "attestation_uid": None,
    }
    status = 500
    outcome = "error"
    error_code: Optional[str] = None
    witness_uid: Optional[str] = None

    try:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise WitnessError.missing_fields("Request body must be a JSON object")

        params = validate_params(body)
        log_fields.update(params.log_fields())

        result = await submit_controller_witness_attestation(params)

        status = 200
        outcome = "existing" if result.existing else "success"
        witness_uid = result.uid

        response = WitnessResponse(**result.model_dump(), elapsed=_elapsed(start))
        return JSONResponse(status_code=200, content=response.model_dump(by_alias=True))

    except WitnessError as e:
        status = e.http_status
        error_code = e.code
        return _error_response(e.code, e.message, e.http_status, start)

    except Exception as e:
        status = 500
        error_code = ErrorCode.SERVER_ERROR
        message = getattr(e, "reason", None) or str(e) or "Internal error"
        log.exception("controller witness request failed unexpectedly")
        return _error_response(ErrorCode.SERVER_ERROR, message, 500, start)

    finally:
        extra: Dict[str, Any] = {
            "route": CONTROLLER_WITNESS_ROUTE,
            "remote_addr": request.client.host if request.client else "-",
            "status": status,
            "duration_ms": int((time.time() - start) * 1000),
            "outcome": outcome,
            **log_fields,
        }
        if error_code:
            extra["error_code"] = error_code
        if witness_uid:
            extra["witness_uid"] = witness_uid
        log.info("controller_witness_request", extra=extra)


@app.get("/version")
def version():
    # GIT_SHA is injected at deploy time
    return {"git_sha": os.getenv("GIT_SHA", "unknown")}


@app.get("/admin")
def admin():
    """Return configured allowlists and limits for operator visibility.

    Gated by ADMIN_ENDPOINT_ENABLED (default: True for dev, False for prod).
    """
    from app.core import config
    from app.witness.cache import get_witness_cache
    from app.witness.schema_registry import SCHEMA_REGISTRY_VERSION, get_all_schemas

    if not config.ADMIN_ENDPOINT_ENABLED:
        return JSONResponse(
            status_code=404,
            content={"detail": "Admin endpoint disabled"}
        )

    schemas = get_all_schemas()
    return {
        "allowlists": {
            "approved_chains": {str(k): v for k, v in config.APPROVED_WITNESS_CHAINS.items()},
            "approved_attesters": {
                str(k): v for k, v in config.APPROVED_CONTROLLER_WITNESS_ATTESTERS.items()
            },
        },
        "schemas": {
            "registry_version": SCHEMA_REGISTRY_VERSION,
            "registry_file": config.SCHEMA_REGISTRY_FILE or None,
            "witness_enabled": [s.id for s in schemas if s.witness is not None],
            "controller_witness_deployments": {
                str(k): v
                for s in schemas if s.id == config.CONTROLLER_WITNESS_SCHEMA_ID
                for k, v in s.deployed_uids.items()
            },
        },
        "policy": {
            "evidence_fetch_timeout_seconds": config.EVIDENCE_FETCH_TIMEOUT_SECONDS,
            "did_doc_max_size_bytes": config.DID_DOC_MAX_SIZE_BYTES,
            "did_doc_max_redirects": config.DID_DOC_MAX_REDIRECTS,
            "ledger_rpc_timeout_seconds": config.LEDGER_RPC_TIMEOUT_SECONDS,
            "receipt_timeout_seconds": config.RECEIPT_TIMEOUT_SECONDS,
        },
        "environment": {
            "log_level": logging.getLogger().getEffectiveLevel(),
            "log_level_name": logging.getLevelName(logging.getLogger().getEffectiveLevel()),
        },
        "cache_metrics": {
            "witness_entries": len(get_witness_cache()),
        },
    }


WITNESS_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LogLevelRequest(BaseModel):
    level: str


def _witness_child_loggers():
    prefix = f"{log.name}."
    return [
        logger for name, logger in logging.root.manager.loggerDict.items()
        if name.startswith(prefix) and isinstance(logger, logging.Logger)
    ]


@app.post("/admin/log-level")
def set_log_level(req: LogLevelRequest):
    """Change the witness loggers' level at runtime.

    Applies to "witness" and every "witness.*" module logger; the root
    logger and third-party loggers (web3, httpx, dns) keep WITNESS_LOG_LEVEL.
    Gated by ADMIN_ENDPOINT_ENABLED.
    """
    from app.core import config

    if not config.ADMIN_ENDPOINT_ENABLED:
        return JSONResponse(status_code=404, content={"detail": "Admin endpoint disabled"})

    level_name = req.level.strip().upper()
    if level_name not in WITNESS_LOG_LEVELS:
        return JSONResponse(
            status_code=400,
            content={"detail": f"level must be one of: {', '.join(WITNESS_LOG_LEVELS)}"},
        )

    level = logging.getLevelName(level_name)
    log.setLevel(level)
    children = _witness_child_loggers()
    for child in children:
        # Children inherit from "witness" once their own level is cleared
        child.setLevel(logging.NOTSET)

    log.warning(f"witness log level set to {level_name} ({len(children)} module loggers)")
    return {
        "logger": log.name,
        "log_level": level_name,
        "module_loggers": sorted(child.name for child in children),
    }
