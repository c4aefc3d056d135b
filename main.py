from dotenv import load_dotenv
import logging

load_dotenv()

from styling_backend.config import get_settings
from styling_backend.server.logging_config import setup_logging

settings = get_settings()
setup_logging(settings.log_level)

# Create logger instance
logger = logging.getLogger(__name__)

from styling_backend.server.server import app

if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on {settings.server_host}:{settings.server_port} with 1 worker...")
    # A single worker keeps the in-memory credit fallback coherent
    uvicorn.run(
        "styling_backend.server.server:app",
        host=settings.server_host,
        port=settings.server_port,
        log_level="info",
        workers=1,
        proxy_headers=True,
        forwarded_allow_ips="*"
    )
