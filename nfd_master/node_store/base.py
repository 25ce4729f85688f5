from typing import List, Protocol, Sequence

from ..models.node import Node, StatusPatchOp
from ..models.topology import NodeTopologyRecord


class NodeStore(Protocol):
    """
    Access to node objects of the cluster.
    Implementations raise NotFoundError / ConflictError / StoreError.
    """

    async def get_node(self, name: str) -> Node:
        ...

    async def update_node(self, node: Node) -> None:
        """Replace labels and annotations of the node in one write."""
        ...

    async def patch_status(self, name: str, ops: Sequence[StatusPatchOp]) -> None:
        """Apply all ops to the node status as one JSON patch."""
        ...

    async def list_nodes(self) -> List[Node]:
        ...


class TopologyStore(Protocol):
    """Access to NodeResourceTopology records."""

    async def get_topology(self, namespace: str, name: str) -> NodeTopologyRecord:
        ...

    async def create_topology(self, record: NodeTopologyRecord) -> NodeTopologyRecord:
        ...

    async def update_topology(self, record: NodeTopologyRecord) -> NodeTopologyRecord:
        ...
