from .dashboard import router as dashboard_router
from .truelayer import router as truelayer_router

__all__ = ["dashboard_router", "truelayer_router"]
