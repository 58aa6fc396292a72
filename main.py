import logging

import uvicorn

from Security.security_config import APP_SETTINGS


def configure_logging(level: str = APP_SETTINGS["LOG_LEVEL"]) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def run() -> None:
    configure_logging()
    logger = logging.getLogger("main")
    host = APP_SETTINGS["HOST"]
    port = APP_SETTINGS["PORT"]

    logger.info("API server running on http://localhost:%s", port)
    logger.info("Demo page available at http://localhost:%s/", port)
    logger.warning("/api/config exposes ENCRYPTION_KEY; this demo must never hold real data")

    config = uvicorn.Config(
        "app.main:app",
        host=host,
        port=port,
        log_level=APP_SETTINGS["LOG_LEVEL"].lower(),
        proxy_headers=True,
    )
    server = uvicorn.Server(config)
    server.run()


if __name__ == "__main__":
    run()
