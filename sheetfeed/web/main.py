"""
Web service launcher
"""

import uvicorn

from sheetfeed.core.config import ConfigManager, ServerConfig


def run(server: ServerConfig | None = None) -> None:
    """Start the FastAPI service with uvicorn."""

    server = server or ConfigManager().get_config().server
    uvicorn.run(
        "sheetfeed.web.app:app",
        host=server.host,
        port=server.port,
        reload=server.reload,
        log_level="info",
    )


if __name__ == "__main__":
    run()
