"""
API v1 Router

Assignment administration, evaluation tasks, per-person listings,
the criterion catalog, incidents and notifications.
"""

from fastapi import APIRouter
from . import assignments, criteria, incidents, notifications, people, tasks

router = APIRouter()

router.include_router(assignments.router, prefix="/assignments", tags=["Assignments"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(people.router, prefix="/people", tags=["People"])
router.include_router(criteria.router, prefix="/criteria", tags=["Criteria"])
router.include_router(incidents.router, prefix="/incidents", tags=["Incidents"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/assignments",
            "/tasks/{taskId}",
            "/people/{personId}/tasks",
            "/criteria/{evaluationType}",
            "/incidents",
            "/people/{personId}/notifications",
            "/notifications/{notificationId}/read",
        ],
    }
