import copy
import logging
from typing import Dict, List, Mapping, Optional

from ..errors import NotFoundError, StoreError
from ..models.topology import NodeTopologyRecord, ResourceInfo, TopologyZone
from ..node_store.base import TopologyStore
from ..schemas.topology import Zone
from ..utils import KeyedLock

logger = logging.getLogger("nfd-master.topology-reconciler")


def convert_zones(zones: Mapping[str, Zone]) -> Dict[str, TopologyZone]:
    """Turn reported zones into the stored TopologyZone shape."""
    converted = {}
    for zone_name, zone in zones.items():
        converted[zone_name] = TopologyZone(
            type=zone.type,
            parent=zone.parent,
            costs={name: int(cost) for name, cost in zone.costs.items()},
            resources={
                name: ResourceInfo(capacity=int(info.capacity), allocatable=int(info.allocatable))
                for name, info in zone.resources.items()
            },
        )
    return converted


class TopologyReconciler:
    """
    Topology Reconciler.
    Responsibility: Upsert the NodeResourceTopology record of a node. The
    zone set is always replaced as a whole.
    """

    def __init__(self, topology_store: TopologyStore, locks: Optional[KeyedLock] = None):
        self.topology_store = topology_store
        self._locks = locks or KeyedLock()

    async def reconcile(
            self,
            node_name: str,
            topology_policies: List[str],
            zones: Mapping[str, Zone],
            namespace: str,
    ) -> NodeTopologyRecord:
        converted = convert_zones(zones)

        async with self._locks(f"{namespace}/{node_name}"):
            try:
                existing = await self.topology_store.get_topology(namespace, node_name)
            except NotFoundError:
                record = NodeTopologyRecord(
                    name=node_name,
                    namespace=namespace,
                    topology_policies=list(topology_policies),
                    zones=converted,
                )
                try:
                    created = await self.topology_store.create_topology(record)
                except StoreError as e:
                    raise type(e)(f"failed to create NodeResourceTopology {namespace}/{node_name}: {e}", e.status) from e
                logger.info(f"NodeResourceTopology {namespace}/{node_name} created with {len(converted)} zones")
                return created

            mutated = copy.deepcopy(existing)
            mutated.zones = converted
            try:
                updated = await self.topology_store.update_topology(mutated)
            except StoreError as e:
                raise type(e)(f"failed to update NodeResourceTopology {namespace}/{node_name}: {e}", e.status) from e
            logger.info(f"NodeResourceTopology {namespace}/{node_name} updated with {len(converted)} zones")
            return updated
