import json
import logging
import sys
from typing import Any

from config import Settings, settings as default_settings
from utils.datetime_utils import utcnow


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(app_settings: Settings | None = None) -> logging.Logger:
    """Configure the root logger once; JSON when LOG_FORMAT=json, plain text otherwise."""
    cfg = app_settings or default_settings
    level = getattr(logging, (cfg.LOG_LEVEL or "INFO").upper(), logging.INFO)

    if (cfg.LOG_FORMAT or "").lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    return root
