"""Run the API Manager with uvicorn."""

import uvicorn

from api_manager.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "api_manager.main:app",
        host=settings.app_host,
        port=settings.app_port,
        log_level=settings.log_level.lower(),
    )
