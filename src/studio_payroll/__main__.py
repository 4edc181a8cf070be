"""Run the payroll API with uvicorn: ``python -m studio_payroll``."""

import logging

import uvicorn

from studio_payroll.config import Settings

logger = logging.getLogger("studio_payroll")


def main() -> None:
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)
    logger.info("Starting payroll API on %s:%d", settings.host, settings.port)
    uvicorn.run(
        "studio_payroll.api.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
