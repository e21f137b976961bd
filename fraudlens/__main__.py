"""
Run the API server: ``python -m fraudlens``.

Serves HTTPS when enabled and the certificate files are readable,
otherwise falls back to plain HTTP.
"""

import logging
import os

import uvicorn

from fraudlens.config import settings
from fraudlens.utils.logging_config import init_logging

logger = logging.getLogger("fraudlens")


def main():
    init_logging()
    ssl_options = {}
    if settings.enable_https:
        if os.access(settings.ssl_cert_path, os.R_OK) and os.access(settings.ssl_key_path, os.R_OK):
            ssl_options = {
                "ssl_certfile": settings.ssl_cert_path,
                "ssl_keyfile": settings.ssl_key_path,
            }
        else:
            logger.error(
                f"Cannot read SSL certificate ({settings.ssl_cert_path}) or key "
                f"({settings.ssl_key_path}); falling back to HTTP"
            )

    scheme = "https" if ssl_options else "http"
    logger.info(f"Serving on {scheme}://{settings.server_host}:{settings.server_port}")
    uvicorn.run(
        "fraudlens.api.server:app",
        host=settings.server_host,
        port=settings.server_port,
        log_config=None,  # keep the JSON logging set up by the app
        **ssl_options,
    )


if __name__ == "__main__":
    main()
