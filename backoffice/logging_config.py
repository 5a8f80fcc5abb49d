import logging.config

from backoffice.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [%(request_id)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Route all loggers through one handler that stamps the current request id."""
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "request_id": {"()": "backoffice.middleware.request_id.RequestIdLogFilter"},
            },
            "formatters": {
                "default": {"format": LOG_FORMAT},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["request_id"],
                },
            },
            "root": {
                "level": (level or settings.log_level).upper(),
                "handlers": ["console"],
            },
        }
    )
