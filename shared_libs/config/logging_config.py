import json
import logging.config
import os
import sys
import warnings


class GCPJSONFormatter(logging.Formatter):
    """
    JSON formatter for Google Cloud Logging with structured fields.

    Outputs logs as JSON with a 'severity' field (GCP standard) so that
    Cloud Functions and Cloud Run pick up the level, and keeps any
    extra={} fields searchable in the Cloud Logging console.
    """

    # Standard logging record attributes to exclude from extra fields
    RESERVED_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'message', 'pathname', 'process', 'processName', 'relativeCreated',
        'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
        'taskName', 'asctime'
    }

    def format(self, record):
        log_obj = {
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in self.RESERVED_ATTRS:
                try:
                    json.dumps(value)
                    log_obj[key] = value
                except (TypeError, ValueError):
                    log_obj[key] = str(value)

        return json.dumps(log_obj)


def _is_gcp_environment() -> bool:
    """Check if running in a Google Cloud serverless environment."""
    return (
        os.getenv('K_SERVICE') is not None or      # Cloud Run / Cloud Functions gen2
        os.getenv('FUNCTION_TARGET') is not None or  # Functions framework on GCP
        os.getenv('ENV_TYPE') == 'gcp'
    )


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            "class": "pythonjsonlogger.jsonlogger.JsonFormatter",
        },
        "gcp_json": {
            "()": GCPJSONFormatter,
        },
        "pipe": {
            "format": "| %(asctime)s | %(levelname)s | %(name)s | %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "stdout": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "json",
        }
    },
    "loggers": {"": {"handlers": ["stdout"], "level": LOG_LEVEL}},
}

if sys.stdout.isatty():
    LOGGING["handlers"]["stdout"]["formatter"] = "pipe"
elif _is_gcp_environment():
    LOGGING["handlers"]["stdout"]["formatter"] = "gcp_json"
else:
    LOGGING["handlers"]["stdout"]["formatter"] = "json"

warnings.filterwarnings("ignore", category=FutureWarning)

logging.config.dictConfig(LOGGING)

# Client libraries are chatty at INFO; raise them to WARNING unless LOG_LEVEL asks for more
QUIET_LOGGERS = ["werkzeug", "functions_framework", "httpx", "httpcore", "urllib3", "google.auth"]

for name in QUIET_LOGGERS:
    lg = logging.getLogger(name)
    lg.propagate = True
    if LOG_LEVEL == "INFO":
        lg.setLevel(logging.WARNING)
