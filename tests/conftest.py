import copy
from typing import Dict, List, Optional, Sequence

import pytest

from nfd_master.api_gateway.ca import generate_ca
from nfd_master.config import Settings
from nfd_master.errors import NotFoundError, StoreError
from nfd_master.models.node import Node, StatusPatchOp
from nfd_master.models.topology import NodeTopologyRecord


def _unescape(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


class FakeNodeStore:
    """In-memory NodeStore recording every write."""

    def __init__(self, nodes: Optional[List[Node]] = None):
        self.nodes: Dict[str, Node] = {n.name: n for n in nodes or []}
        self.updates: List[Node] = []
        self.patches: List[tuple] = []
        self.fail_update: Optional[StoreError] = None
        self.fail_patch: Optional[StoreError] = None

    async def get_node(self, name: str) -> Node:
        if name not in self.nodes:
            raise NotFoundError(f"get node {name!r}: not found", status=404)
        return copy.deepcopy(self.nodes[name])

    async def update_node(self, node: Node) -> None:
        if self.fail_update:
            raise self.fail_update
        self.updates.append(copy.deepcopy(node))
        stored = self.nodes[node.name]
        stored.labels = dict(node.labels)
        stored.annotations = dict(node.annotations)

    async def patch_status(self, name: str, ops: Sequence[StatusPatchOp]) -> None:
        if self.fail_patch:
            raise self.fail_patch
        self.patches.append((name, list(ops)))
        stored = self.nodes[name]
        for op in ops:
            _, _, section, resource = op.path.split("/", 3)
            target = stored.capacity if section == "capacity" else stored.allocatable
            resource = _unescape(resource)
            if op.op == "remove":
                del target[resource]
            else:
                target[resource] = op.value
                if op.op == "add" and section == "capacity":
                    stored.allocatable[resource] = op.value

    async def list_nodes(self) -> List[Node]:
        return [copy.deepcopy(n) for n in self.nodes.values()]

    @property
    def status_ops(self) -> List[StatusPatchOp]:
        return [op for _, ops in self.patches for op in ops]


class FakeTopologyStore:
    """In-memory TopologyStore keyed by namespace/name."""

    def __init__(self):
        self.records: Dict[str, NodeTopologyRecord] = {}
        self.created: List[NodeTopologyRecord] = []
        self.updated: List[NodeTopologyRecord] = []
        self.fail_get: Optional[StoreError] = None

    async def get_topology(self, namespace: str, name: str) -> NodeTopologyRecord:
        if self.fail_get:
            raise self.fail_get
        key = f"{namespace}/{name}"
        if key not in self.records:
            raise NotFoundError(f"get topology {key}: not found", status=404)
        return copy.deepcopy(self.records[key])

    async def create_topology(self, record: NodeTopologyRecord) -> NodeTopologyRecord:
        self.created.append(copy.deepcopy(record))
        self.records[f"{record.namespace}/{record.name}"] = copy.deepcopy(record)
        return record

    async def update_topology(self, record: NodeTopologyRecord) -> NodeTopologyRecord:
        self.updated.append(copy.deepcopy(record))
        self.records[f"{record.namespace}/{record.name}"] = copy.deepcopy(record)
        return record


@pytest.fixture
def node_store():
    return FakeNodeStore([Node(name="n1"), Node(name="n2")])


@pytest.fixture
def topology_store():
    return FakeTopologyStore()


@pytest.fixture
def settings():
    return Settings(_env_file=None, RESOURCE_LABELS=["gpu"])


@pytest.fixture(scope="session")
def ca():
    return generate_ca("test-ca")
