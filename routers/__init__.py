# routers/__init__.py

from fastapi import APIRouter

from .issues import router as issues_router
from .dashboard import router as dashboard_router
from .search import router as search_router
from .students import router as students_router
from .staff import router as staff_router
from .rooms import router as rooms_router
from .profile import router as profile_router
from .health import router as health_router
from .notice_board import router as notice_board_router


# Master router (for mounting the whole API under a prefix)
api_router = APIRouter()

api_router.include_router(issues_router)
api_router.include_router(dashboard_router)
api_router.include_router(search_router)
api_router.include_router(students_router)
api_router.include_router(staff_router)
api_router.include_router(rooms_router)
api_router.include_router(profile_router)
api_router.include_router(health_router)
api_router.include_router(notice_board_router)

__all__ = ["api_router"]
