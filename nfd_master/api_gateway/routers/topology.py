from fastapi import APIRouter, Depends

from ..dependencies import get_reporting_service
from ..transport import get_peer_info
from ...authorization.peer import PeerInfo
from ...reporting.service import ReportingService
from ...schemas.topology import NodeTopologyRequest, NodeTopologyResponse

router = APIRouter(tags=["Topology"])


@router.post("/update", response_model=NodeTopologyResponse)
async def update_node_topology(
        request_in: NodeTopologyRequest,
        peer: PeerInfo = Depends(get_peer_info),
        service: ReportingService = Depends(get_reporting_service),
):
    """Replace the NodeResourceTopology zones of the reporting node."""
    return await service.update_node_topology(request_in, peer)
