from fastapi import APIRouter, Depends

from ..dependencies import get_reporting_service
from ..transport import get_peer_info
from ...authorization.peer import PeerInfo
from ...reporting.service import ReportingService
from ...schemas.feature import SetLabelsReply, SetLabelsRequest

router = APIRouter(tags=["Labeler"])


@router.post("/set-labels", response_model=SetLabelsReply)
async def set_labels(
        request_in: SetLabelsRequest,
        peer: PeerInfo = Depends(get_peer_info),
        service: ReportingService = Depends(get_reporting_service),
):
    """Publish the feature labels reported by a worker for its node."""
    return await service.set_labels(request_in, peer)
