"""
User search endpoints
"""
from typing import List
from fastapi import APIRouter, Query

from api.dependencies import DashboardServiceDep

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/search", response_model=List[str])
async def search_users(service: DashboardServiceDep, q: str = Query("", description="Username prefix")):
    """Username suggestions (empty for queries shorter than 2 characters)"""
    return await service.search_usernames(q)
