"""
app/api/routers package marker.
"""

from app.api.routers.sales import router as sales_router

__all__ = ["sales_router"]
