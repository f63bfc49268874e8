"""
Logging configuration for the session service.

Uvicorn access lines for polled endpoints (GET /health unless configured
otherwise) are dropped; session and store events keep their own logger.
"""

import logging
import logging.config
from typing import Any, Dict, Iterable, List, Optional

DEFAULT_QUIET_PATHS = ("/health",)

# Loggers writing through the default handler instead of propagating to root
_SERVICE_LOGGERS = ("uvicorn", "uvicorn.error", "sealedsession")


class HealthCheckFilter(logging.Filter):
    """Filter to suppress access log lines for GET requests to quiet paths."""

    def __init__(self, paths: Optional[Iterable[str]] = None):
        super().__init__()
        self.paths = frozenset(paths or DEFAULT_QUIET_PATHS)

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out quiet-path requests from uvicorn access logs."""
        if record.name != "uvicorn.access":
            return True
        # uvicorn logs (client_addr, method, full_path, http_version, status_code)
        if isinstance(record.args, tuple) and len(record.args) == 5:
            method, full_path = record.args[1], str(record.args[2])
            return not (method == "GET" and full_path.split("?", 1)[0] in self.paths)
        message = record.getMessage()
        return not ("GET" in message and any(path in message for path in self.paths))


def quiet_paths(skip_paths: Dict[str, list]) -> List[str]:
    """Paths served without a session on GET; their access lines are noise."""
    return sorted(
        path for path, methods in skip_paths.items() if "GET" in methods or "*" in methods
    )


def get_logging_config(
    level: str = "INFO",
    quiet: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """
    Build a dictConfig for uvicorn and the sealedsession package.

    Args:
        level: Level applied to every configured logger
        quiet: Paths whose GET access lines are suppressed (default: /health)
    """
    level = level.upper()
    loggers: Dict[str, Any] = {
        name: {"handlers": ["default"], "level": level, "propagate": False}
        for name in _SERVICE_LOGGERS
    }
    loggers["uvicorn.access"] = {"handlers": ["access"], "level": level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "health_check_filter": {
                "()": HealthCheckFilter,
                "paths": list(quiet or DEFAULT_QUIET_PATHS),
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "access": {
                "format": "%(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout"
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["health_check_filter"]
            }
        },
        "loggers": loggers,
        "root": {
            "level": level,
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "INFO", quiet: Optional[Iterable[str]] = None) -> None:
    """Apply the package logging configuration."""
    logging.config.dictConfig(get_logging_config(level, quiet))
