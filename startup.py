import logging
import os
import sys

import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

# Allow running from a checkout without installing the package
current_dir = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(current_dir, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)


if __name__ == "__main__":
    from clinicscribe.core.config import get_settings

    try:
        settings = get_settings()
    except ValueError as ve:
        logger.error(f"Configuration validation failed: {ve}")
        sys.exit(1)

    port = int(os.environ.get("PORT", settings.port))
    host = os.environ.get("HOST", settings.host)
    logger.info(f"Starting {settings.app_name} v{settings.app_version} on {host}:{port} ({settings.app_env})")

    uvicorn.run(
        "clinicscribe.app:app",
        host=host,
        port=port,
        workers=1,
        log_level=settings.logging.level.lower(),
        access_log=True,
        timeout_keep_alive=75,
        timeout_graceful_shutdown=30,
    )
