import asyncio
import logging
import sys

from nfd_master.api_gateway.service import APIGatewayService, create_app
from nfd_master.authorization.peer import PeerAuthenticator
from nfd_master.config import Settings
from nfd_master.label_reconciler.service import LabelReconciler
from nfd_master.logger import setup_logging
from nfd_master.master_node.service import MasterNodeService
from nfd_master.node_store.kubernetes import KubernetesNodeStore, KubernetesTopologyStore, load_api_client
from nfd_master.prune.service import prune_nodes
from nfd_master.reporting.service import ReportingService
from nfd_master.service_manager.service_manager import ServiceManager
from nfd_master.topology_reconciler.service import TopologyReconciler
from nfd_master.utils import print_banner
from nfd_master.version import get_version

logger = logging.getLogger("nfd-master")


async def main(settings: Settings) -> int:
    """
    Main entry point for the NFD master.
    Builds every component from the settings and serves until cancelled.
    """
    print_banner("NFD-Master")
    logger.info(f"Node Feature Discovery Master {get_version()}")
    logger.info(f"NodeName: '{settings.NODE_NAME}'")

    api_client = load_api_client(settings.KUBECONFIG or None)
    node_store = KubernetesNodeStore(api_client, timeout=settings.STORE_TIMEOUT_SECONDS)
    topology_store = KubernetesTopologyStore(api_client, timeout=settings.STORE_TIMEOUT_SECONDS)
    label_reconciler = LabelReconciler(node_store)

    if settings.PRUNE:
        await prune_nodes(node_store, label_reconciler)
        return 0

    reporting = ReportingService(
        settings,
        label_reconciler,
        TopologyReconciler(topology_store),
        PeerAuthenticator(settings.VERIFY_NODE_NAME),
        logging.getLogger("nfd-master.reporting"),
    )
    api_gateway = APIGatewayService(settings, create_app(reporting), asyncio.Event())

    service_manager = ServiceManager()
    if not settings.NO_PUBLISH:
        service_manager.register(MasterNodeService(node_store, settings.NODE_NAME))
    service_manager.register(api_gateway)

    await service_manager.start_all()

    try:
        await api_gateway.wait_closed()
    except asyncio.CancelledError:
        logger.info("NFD-Master shutting down...")
        await service_manager.stop_all()
        raise
    return 0


def run():
    settings = Settings()
    setup_logging(settings)
    try:
        sys.exit(asyncio.run(main(settings)))
    except KeyboardInterrupt:
        logger.info("NFD-Master stopped by user.")
    except Exception as e:
        logger.error(f"NFD-Master failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
