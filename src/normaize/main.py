import uvicorn
from normaize.config import settings
from normaize.utils.logger import get_logger

logger = get_logger(__name__)

APP_PATH = "normaize.api.routes:app"


def _banner() -> None:
    limits = {
        "Rows per dataset": settings.MAX_ROWS_PER_DATASET,
        "Columns per dataset": settings.MAX_COLUMNS_PER_DATASET,
        "Upload size (MB)": settings.MAX_UPLOAD_SIZE_MB,
        "Chart data points": settings.MAX_DATA_POINTS,
        "Cache TTL (min)": settings.CACHE_EXPIRATION_MINUTES,
        "Operation timeout (s)": settings.OPERATION_TIMEOUT_SECONDS,
    }
    logger.info("=" * 50)
    logger.info(f"STARTING {settings.APP_NAME} v{settings.APP_VERSION} "
                f"({'Development' if settings.DEBUG else 'Production'})")
    for label, value in limits.items():
        logger.info(f"  {label:<24}{value}")
    logger.info("=" * 50)


def start():
    """Run the Normaize API with uvicorn on the configured host and port."""
    _banner()
    try:
        uvicorn.run(
            APP_PATH,
            host=settings.HOST,
            port=settings.PORT,
            reload=settings.DEBUG,
            log_level=settings.LOG_LEVEL.lower()
        )
    except KeyboardInterrupt:
        logger.info("Shutting down server...")


if __name__ == "__main__":
    start()
