import logging
from typing import Optional

from ..authorization.peer import PeerAuthenticator, PeerInfo
from ..config import Settings
from ..constants import (
    EXTENDED_RESOURCES_ANNOTATION,
    FEATURE_LABELS_ANNOTATION,
    WORKER_VERSION_ANNOTATION,
)
from ..errors import NfdError
from ..feature_classifier.classifier import filter_feature_labels
from ..label_reconciler.diff import add_ns, join_key_list
from ..label_reconciler.service import LabelReconciler
from ..schemas.feature import SetLabelsReply, SetLabelsRequest
from ..schemas.topology import NodeTopologyRequest, NodeTopologyResponse
from ..topology_reconciler.service import TopologyReconciler


class ReportingService:
    """
    Reporting Service.
    Responsibility: Handle feature and topology reports from workers.
    Every request passes the same authorization step, then is classified
    and reconciled unless publishing is disabled.
    """

    def __init__(
            self,
            settings: Settings,
            label_reconciler: LabelReconciler,
            topology_reconciler: TopologyReconciler,
            authenticator: Optional[PeerAuthenticator] = None,
            logger: Optional[logging.Logger] = None,
    ):
        self.settings = settings
        self.label_reconciler = label_reconciler
        self.topology_reconciler = topology_reconciler
        self.authenticator = authenticator or PeerAuthenticator(settings.VERIFY_NODE_NAME)
        self.logger = logger or logging.getLogger("nfd-master.reporting")

    def authorize(self, peer: Optional[PeerInfo], node_name: str) -> None:
        self.authenticator.authorize(peer, node_name)

    async def set_labels(self, request: SetLabelsRequest, peer: Optional[PeerInfo] = None) -> SetLabelsReply:
        self.authorize(peer, request.node_name)
        self.logger.info(f"REQUEST Node: {request.node_name} NFD-version: {request.nfd_version} Labels: {request.labels}")

        labels, extended_resources = filter_feature_labels(
            request.labels,
            self.settings.EXTRA_LABEL_NS,
            self.settings.label_whitelist,
            self.settings.RESOURCE_LABELS,
        )

        if self.settings.NO_PUBLISH:
            return SetLabelsReply()

        # Advertise worker version, label names and extended resources as annotations
        annotations = {
            WORKER_VERSION_ANNOTATION: request.nfd_version,
            FEATURE_LABELS_ANNOTATION: join_key_list(add_ns(key) for key in labels),
            EXTENDED_RESOURCES_ANNOTATION: join_key_list(extended_resources),
        }
        try:
            await self.label_reconciler.reconcile(request.node_name, labels, annotations, extended_resources)
        except NfdError as e:
            self.logger.error(f"failed to advertise labels of node {request.node_name}: {e}")
            raise
        return SetLabelsReply()

    async def update_node_topology(
            self, request: NodeTopologyRequest, peer: Optional[PeerInfo] = None
    ) -> NodeTopologyResponse:
        self.authorize(peer, request.node_name)
        self.logger.info(
            f"REQUEST Node: {request.node_name} NFD-version: {request.nfd_version} "
            f"Topology Policy: {request.topology_policies} Zones: {list(request.zones)}"
        )

        if self.settings.NO_PUBLISH:
            return NodeTopologyResponse()

        try:
            await self.topology_reconciler.reconcile(
                request.node_name,
                request.topology_policies,
                request.zones,
                self.settings.TOPOLOGY_NAMESPACE,
            )
        except NfdError as e:
            self.logger.error(f"failed to advertise topology of node {request.node_name}: {e}")
            raise
        return NodeTopologyResponse()
