import logging
import sys
from logging.config import dictConfig
from salesdesk.core.config import APP_ENV

LOG_LEVEL = "DEBUG" if APP_ENV == "development" else "INFO"


def setup_logging():
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,

            # -----------------
            # FORMATTERS
            # -----------------
            "formatters": {
                "default": {
                    "format": (
                        "%(asctime)s | %(levelname)s | "
                        "%(name)s | %(message)s"
                    ),
                },
                "access": {
                    "format": (
                        "%(asctime)s | ACCESS | "
                        "%(client_addr)s | %(user)s | %(method)s | "
                        "%(path)s | cart=%(cart_session)s | %(status_code)s | "
                        "%(process_time_ms)sms"
                    ),
                },
            },

            # -----------------
            # HANDLERS
            # -----------------
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "default",
                },
                "access_console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "access",
                },
            },

            # -----------------
            # LOGGERS
            # -----------------
            "loggers": {
                # request_logging_middleware owns access lines
                "access": {
                    "handlers": ["access_console"],
                    "level": "INFO",
                    "propagate": False,
                },
                "uvicorn.access": {
                    "level": "WARNING",
                },
                # token discards and staged changes are DEBUG
                "salesdesk.services.cart": {
                    "level": LOG_LEVEL,
                },
                "apscheduler": {
                    "level": "WARNING",
                },
                "sqlalchemy.engine": {
                    "level": "WARNING",
                },
            },

            # -----------------
            # ROOT LOGGER
            # -----------------
            "root": {
                "level": LOG_LEVEL,
                "handlers": ["console"],
            },
        }
    )
