import asyncio
import logging
from typing import Callable, List, Optional, Sequence

import urllib3
from kubernetes import client, config
from kubernetes.client import ApiClient
from kubernetes.client.exceptions import ApiException

from ..constants import TOPOLOGY_GROUP, TOPOLOGY_PLURAL, TOPOLOGY_VERSION
from ..errors import ConflictError, NotFoundError, StoreError
from ..models.node import Node, StatusPatchOp
from ..models.topology import NodeTopologyRecord

logger = logging.getLogger("nfd-master.node-store")


def load_api_client(kubeconfig: Optional[str] = None) -> ApiClient:
    """
    Build a Kubernetes API client.
    Uses the given kubeconfig, otherwise in-cluster config with the default
    kubeconfig as fallback.
    """
    if kubeconfig:
        logger.info(f"Loading kubeconfig from {kubeconfig}")
        return config.new_client_from_config(config_file=kubeconfig)
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
    except config.ConfigException:
        config.load_kube_config()
        logger.info("Loaded kubeconfig")
    return ApiClient()


def _translate(e: ApiException, what: str) -> StoreError:
    if e.status == 404:
        return NotFoundError(f"{what}: not found", status=404)
    if e.status == 409:
        return ConflictError(f"{what}: conflict: {e.reason}", status=409)
    return StoreError(f"{what}: {e.status} {e.reason}", status=e.status)


class _KubernetesStore:
    def __init__(self, timeout: Optional[float] = None):
        self._timeout = timeout

    async def _call(self, what: str, fn: Callable, *args, **kwargs):
        if self._timeout:
            kwargs["_request_timeout"] = self._timeout
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except ApiException as e:
            raise _translate(e, what) from e
        except (urllib3.exceptions.HTTPError, OSError) as e:
            raise StoreError(f"{what}: {e}") from e


class KubernetesNodeStore(_KubernetesStore):
    """NodeStore backed by the core/v1 node API."""

    def __init__(self, api_client: ApiClient, timeout: Optional[float] = None):
        super().__init__(timeout)
        self.core = client.CoreV1Api(api_client)

    @staticmethod
    def _to_node(obj: client.V1Node) -> Node:
        status = obj.status or client.V1NodeStatus()
        return Node(
            name=obj.metadata.name,
            labels=dict(obj.metadata.labels or {}),
            annotations=dict(obj.metadata.annotations or {}),
            capacity=dict(status.capacity or {}),
            allocatable=dict(status.allocatable or {}),
            resource_version=obj.metadata.resource_version,
            raw=obj,
        )

    async def get_node(self, name: str) -> Node:
        obj = await self._call(f"get node {name!r}", self.core.read_node, name)
        return self._to_node(obj)

    async def update_node(self, node: Node) -> None:
        if node.raw is None:
            raise StoreError(f"update node {node.name!r}: node was not read from the cluster")
        body = node.raw
        body.metadata.labels = dict(node.labels)
        body.metadata.annotations = dict(node.annotations)
        updated = await self._call(f"update node {node.name!r}", self.core.replace_node, node.name, body)
        node.raw = updated
        node.resource_version = updated.metadata.resource_version

    async def patch_status(self, name: str, ops: Sequence[StatusPatchOp]) -> None:
        body = [op.to_dict() for op in ops]
        await self._call(f"patch status of node {name!r}", self.core.patch_node_status, name, body)

    async def list_nodes(self) -> List[Node]:
        result = await self._call("list nodes", self.core.list_node)
        return [self._to_node(obj) for obj in result.items]


class KubernetesTopologyStore(_KubernetesStore):
    """TopologyStore backed by the NodeResourceTopology custom resource."""

    def __init__(self, api_client: ApiClient, timeout: Optional[float] = None):
        super().__init__(timeout)
        self.custom = client.CustomObjectsApi(api_client)

    async def get_topology(self, namespace: str, name: str) -> NodeTopologyRecord:
        body = await self._call(
            f"get topology {namespace}/{name}",
            self.custom.get_namespaced_custom_object,
            TOPOLOGY_GROUP, TOPOLOGY_VERSION, namespace, TOPOLOGY_PLURAL, name,
        )
        return NodeTopologyRecord.from_body(body)

    async def create_topology(self, record: NodeTopologyRecord) -> NodeTopologyRecord:
        body = await self._call(
            f"create topology {record.namespace}/{record.name}",
            self.custom.create_namespaced_custom_object,
            TOPOLOGY_GROUP, TOPOLOGY_VERSION, record.namespace, TOPOLOGY_PLURAL, record.to_body(),
        )
        return NodeTopologyRecord.from_body(body)

    async def update_topology(self, record: NodeTopologyRecord) -> NodeTopologyRecord:
        body = await self._call(
            f"update topology {record.namespace}/{record.name}",
            self.custom.replace_namespaced_custom_object,
            TOPOLOGY_GROUP, TOPOLOGY_VERSION, record.namespace, TOPOLOGY_PLURAL, record.name, record.to_body(),
        )
        return NodeTopologyRecord.from_body(body)
