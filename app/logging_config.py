import json, logging, os, sys
from datetime import datetime, timezone

# Extra attributes copied from log records into the JSON payload
EXTRA_FIELDS = (
    "request_id", "route", "remote_addr", "status", "duration_ms", "outcome",
    "error_code", "subject", "controller", "method", "chain_id", "eas_contract",
    "schema_uid", "attestation_uid", "witness_uid",
)

class JsonFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k in EXTRA_FIELDS:
            if hasattr(record, k):
                payload[k] = getattr(record, k)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

def configure_logging():
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JsonFormatter())
    handlers = [console_handler]

    # File handler only when explicitly requested (always append)
    log_file = os.getenv("WITNESS_LOG_FILE")
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a')
        file_handler.setFormatter(JsonFormatter())
        handlers.append(file_handler)

    root = logging.getLogger()
    # Allow DEBUG level via environment variable (default: INFO)
    log_level = os.getenv("WITNESS_LOG_LEVEL", "INFO").upper()
    root.setLevel(getattr(logging, log_level, logging.INFO))
    root.handlers = handlers
