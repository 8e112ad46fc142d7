import uvicorn

from claimserve.config import get_settings
from claimserve.logger import get_logger

logger = get_logger(__name__)

if __name__ == "__main__":
    settings = get_settings()
    logger.info("Starting claim server on port %d (links point at %s)", settings.port, settings.site_host)

    uvicorn.run(
        "claimserve.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.port,
    )
