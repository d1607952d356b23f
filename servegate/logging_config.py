"""
Logging configuration: suppresses health check access logs and routes
application loggers to stdout.
"""

import logging
import logging.config
import os
from typing import Any, Dict, Optional


class HealthCheckFilter(logging.Filter):
    """Filter to suppress health check endpoint logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out health check requests from uvicorn access logs."""
        if record.name == "uvicorn.access":
            message = record.getMessage()
            if "/healthz" in message and "GET" in message:
                return False
        return True


def get_logging_config(level: Optional[str] = None) -> Dict[str, Any]:
    """Get logging configuration with health check suppression."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "health_check_filter": {
                "()": HealthCheckFilter
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
        "loggers": {
            "uvicorn": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False
            },
            "uvicorn.error": {
                "handlers": ["default"],
                "level": "INFO",
                "propagate": False
            },
            "uvicorn.access": {
                "handlers": ["access"],
                "level": "INFO",
                "propagate": False
            },
            "httpx": {
                "handlers": ["default"],
                "level": "WARNING",
                "propagate": False
            },
            "servegate": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            }
        },
        "root": {
            "level": "INFO",
            "handlers": ["default"]
        }
    }


def setup_logging(level: Optional[str] = None) -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
