import logging

from ..constants import MASTER_VERSION_ANNOTATION
from ..errors import StoreError
from ..label_reconciler.service import add_annotations
from ..node_store.base import NodeStore
from ..service_manager.base_service import BaseService
from ..version import get_version

logger = logging.getLogger("nfd-master.master-node")


class MasterNodeService(BaseService):
    """
    Master Node Service.
    Responsibility: Advertise the master version as an annotation on the
    node the master runs on. Failure aborts startup.
    """

    def __init__(self, node_store: NodeStore, node_name: str, version: str = ""):
        super().__init__("MasterNodeService")
        self.node_store = node_store
        self.node_name = node_name
        self.version = version or get_version()

    async def start(self):
        if not self.node_name:
            raise StoreError("NODE_NAME is not set, cannot advertise master version")
        node = await self.node_store.get_node(self.node_name)
        add_annotations(node, {MASTER_VERSION_ANNOTATION: self.version})
        try:
            await self.node_store.update_node(node)
        except StoreError as e:
            logger.error(f"can't update node {self.node_name}: {e}")
            raise
        logger.info(f"Advertised master version {self.version} on node {self.node_name}")

    async def stop(self):
        pass
