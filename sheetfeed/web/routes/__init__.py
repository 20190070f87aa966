"""Route modules."""

from sheetfeed.web.routes.data_routes import router as data_router
from sheetfeed.web.routes.health_routes import router as health_router

__all__ = ["data_router", "health_router"]
