"""
API routers package.
"""
from quiziq.routers.admin import router as admin_router
from quiziq.routers.collect import router as collect_router
from quiziq.routers.export import router as export_router
from quiziq.routers.health import router as health_router
from quiziq.routers.leads import router as leads_router
from quiziq.routers.stats import router as stats_router
from quiziq.routers.trackers import router as trackers_router

__all__ = [
    "health_router",
    "collect_router",
    "stats_router",
    "export_router",
    "leads_router",
    "trackers_router",
    "admin_router",
]
