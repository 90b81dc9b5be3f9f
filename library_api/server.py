import errno
import logging
import socket

import uvicorn

from .config import get_settings

logger = logging.getLogger(__name__)


def find_available_port(start_port: int = 5000, host: str = "0.0.0.0", max_attempts: int = 100) -> int:
    """Return the first port from ``start_port`` upwards that can be bound."""
    for port in range(start_port, start_port + max_attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((host, port))
            except OSError as e:
                if e.errno == errno.EADDRINUSE:
                    logger.info(f"Port {port} is busy, trying {port + 1}")
                    continue
                raise
            return port
    raise RuntimeError(f"No free port in range {start_port}-{start_port + max_attempts - 1}")


def main():
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = find_available_port(settings.port, settings.host)
    logger.info(f"Starting server on port {port}")
    uvicorn.run("library_api.main:app", host=settings.host, port=port)


if __name__ == "__main__":
    main()
