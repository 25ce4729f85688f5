import logging

from ..constants import ANNOTATION_NS
from ..errors import StoreError
from ..label_reconciler.service import LabelReconciler
from ..node_store.base import NodeStore

logger = logging.getLogger("nfd-master.prune")


async def prune_nodes(node_store: NodeStore, reconciler: LabelReconciler) -> int:
    """
    Erase all NFD labels, extended resources and annotations from every node.
    Returns the number of nodes pruned; the first failure aborts.
    """
    nodes = await node_store.list_nodes()

    for listed in nodes:
        logger.info(f"pruning node {listed.name!r}...")

        # Prune labels and extended resources
        try:
            await reconciler.reconcile(listed.name, {}, {}, {})
        except StoreError as e:
            raise StoreError(f"failed to prune labels from node {listed.name!r}: {e}", e.status) from e

        # Prune annotations
        node = await node_store.get_node(listed.name)
        for key in [k for k in node.annotations if k.startswith(ANNOTATION_NS)]:
            del node.annotations[key]
        try:
            await node_store.update_node(node)
        except StoreError as e:
            raise StoreError(f"failed to prune annotations from node {listed.name!r}: {e}", e.status) from e

    logger.info(f"pruned {len(nodes)} nodes")
    return len(nodes)
