"""Serve the fleet ledger API: ``python -m fleet_ledger``."""

import uvicorn

from fleet_ledger.config import get_settings
from fleet_ledger.logging_config import configure_logging


def main() -> None:
    """Run uvicorn with host, port, reload and log level taken from settings."""
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "fleet_ledger.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
