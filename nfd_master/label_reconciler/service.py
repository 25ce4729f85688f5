import logging
from typing import Mapping, Optional

from ..constants import (
    ANNOTATION_NS,
    EXTENDED_RESOURCES_ANNOTATION,
    FEATURE_LABELS_ANNOTATION,
)
from ..errors import StoreError
from ..models.node import Node
from ..node_store.base import NodeStore
from ..utils import KeyedLock
from .diff import compute_label_diff, extended_resource_ops, split_key_list

logger = logging.getLogger("nfd-master.label-reconciler")


def add_annotations(node: Node, annotations: Mapping[str, str]) -> None:
    """Add annotations under the NFD annotation namespace; keys are never treated as namespaced."""
    for key, value in annotations.items():
        node.annotations[ANNOTATION_NS + key] = value


class LabelReconciler:
    """
    Label Reconciler.
    Responsibility: Bring the labels, NFD annotations and extended resource
    capacity of one node up to date with the latest feature report, removing
    whatever the previous report published and this one does not.
    """

    def __init__(self, node_store: NodeStore, locks: Optional[KeyedLock] = None):
        self.node_store = node_store
        self._locks = locks or KeyedLock()

    async def reconcile(
            self,
            node_name: str,
            labels: Mapping[str, str],
            annotations: Mapping[str, str],
            extended_resources: Mapping[str, str],
    ) -> None:
        async with self._locks(node_name):
            await self._reconcile(node_name, labels, annotations, extended_resources)

    async def _reconcile(self, node_name, labels, annotations, extended_resources) -> None:
        node = await self.node_store.get_node(node_name)

        # Resolve extended resource changes before the node is modified
        status_ops = extended_resource_ops(node, extended_resources)
        previous_resources = node.annotations.get(ANNOTATION_NS + EXTENDED_RESOURCES_ANNOTATION)

        previous_labels = split_key_list(node.annotations.get(ANNOTATION_NS + FEATURE_LABELS_ANNOTATION, ""))
        diff = compute_label_diff(node.labels, previous_labels, labels)
        if diff.remove:
            logger.debug(f"node {node_name}: removing stale labels {sorted(diff.remove)}")
        diff.apply(node.labels)

        add_annotations(node, annotations)

        try:
            await self.node_store.update_node(node)
        except StoreError as e:
            logger.error(f"can't update node {node_name}: {e}")
            raise

        if not status_ops:
            return

        try:
            await self.node_store.patch_status(node_name, status_ops)
        except StoreError as e:
            logger.error(f"error while patching extended resources of node {node_name}: {e}")
            if node.annotations.get(ANNOTATION_NS + EXTENDED_RESOURCES_ANNOTATION) != previous_resources:
                await self._restore_resource_annotation(node_name, previous_resources)
            raise

    async def _restore_resource_annotation(self, node_name: str, previous: Optional[str]) -> None:
        """
        Labels were committed but the capacity was not. Put back the previous
        extended-resources record so the next report recomputes the same
        status operations.
        """
        key = ANNOTATION_NS + EXTENDED_RESOURCES_ANNOTATION
        try:
            node = await self.node_store.get_node(node_name)
            if previous is None:
                node.annotations.pop(key, None)
            else:
                node.annotations[key] = previous
            await self.node_store.update_node(node)
            logger.info(f"node {node_name}: restored {key}={previous!r} after failed status patch")
        except StoreError as e:
            logger.error(f"node {node_name}: failed to restore {key} after failed status patch: {e}")
