"""Run the back office API with uvicorn: ``python -m backoffice``."""

import uvicorn

from backoffice.config import settings


def main() -> None:
    # log_config=None keeps the handlers installed by configure_logging()
    uvicorn.run(
        "backoffice.app:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
