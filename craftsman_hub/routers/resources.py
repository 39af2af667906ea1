"""
Entity routers built on the generic controller binding.
"""

from fastapi import Depends

from ..core.auth import authorize, protect
from ..core.dependencies import get_user_service, repository_for
from ..models.project import Project
from ..models.review import Review
from .crud import crud_router

# Admin user management
users_router = crud_router(
    get_user_service,
    "User",
    prefix="/api/v1/users",
    tags=["Users"],
    dependencies=[Depends(authorize("admin"))],
)

projects_router = crud_router(
    repository_for(Project),
    "Project",
    prefix="/api/v1/projects",
    tags=["Projects"],
    dependencies=[Depends(protect)],
    populate=["client"],
)

reviews_router = crud_router(
    repository_for(Review),
    "Review",
    prefix="/api/v1/reviews",
    tags=["Reviews"],
    dependencies=[Depends(protect)],
    populate=["client", "craftsman", "project"],
)
