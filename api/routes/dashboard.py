"""
Dashboard endpoints
"""
import logging
from fastapi import APIRouter

from api.dependencies import DashboardServiceDep
from api.exceptions import ComputationTimeoutError, InvalidSubjectError, UpstreamUnavailableError
from api.schemas.dashboard import DashboardResponse
from clients.functions.dashboard import ComputationTimeout, InvalidSubject
from clients.polymarket import UpstreamError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("/{identifier}", response_model=DashboardResponse)
async def get_dashboard(identifier: str, service: DashboardServiceDep):
    """Full dashboard for a username or wallet address"""
    try:
        dashboard = await service.get_dashboard(identifier)
    except InvalidSubject:
        raise InvalidSubjectError(identifier)
    except ComputationTimeout:
        raise ComputationTimeoutError(identifier)
    except UpstreamError as e:
        logger.error(f"❌ Upstream failure for {identifier}: {e}")
        raise UpstreamUnavailableError()

    return DashboardResponse.model_validate(dashboard, from_attributes=True)
