import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..constants import TOPOLOGY_GROUP, TOPOLOGY_KIND, TOPOLOGY_VERSION


@dataclass
class ResourceInfo:
    capacity: int
    allocatable: int


@dataclass
class TopologyZone:
    type: str
    parent: str = ""
    costs: Dict[str, int] = field(default_factory=dict)
    resources: Dict[str, ResourceInfo] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "parent": self.parent,
            "costs": dict(self.costs),
            "resources": {
                name: {"capacity": info.capacity, "allocatable": info.allocatable}
                for name, info in self.resources.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TopologyZone":
        return cls(
            type=data.get("type", ""),
            parent=data.get("parent", ""),
            costs={k: int(v) for k, v in (data.get("costs") or {}).items()},
            resources={
                name: ResourceInfo(capacity=int(info.get("capacity", 0)), allocatable=int(info.get("allocatable", 0)))
                for name, info in (data.get("resources") or {}).items()
            },
        )


@dataclass
class NodeTopologyRecord:
    """
    Per-node NodeResourceTopology object.
    ``extra`` holds every persisted field the master does not manage
    (metadata such as resourceVersion, owner references, ...), so an update
    of an existing record leaves them untouched.
    """
    name: str
    namespace: str
    topology_policies: List[str] = field(default_factory=list)
    zones: Dict[str, TopologyZone] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_body(self) -> Dict[str, Any]:
        body = copy.deepcopy(self.extra)
        metadata = body.setdefault("metadata", {})
        metadata["name"] = self.name
        metadata["namespace"] = self.namespace
        body["apiVersion"] = f"{TOPOLOGY_GROUP}/{TOPOLOGY_VERSION}"
        body["kind"] = TOPOLOGY_KIND
        body["topologyPolicies"] = list(self.topology_policies)
        body["zones"] = {name: zone.to_dict() for name, zone in self.zones.items()}
        return body

    @classmethod
    def from_body(cls, body: Dict[str, Any]) -> "NodeTopologyRecord":
        extra = {k: copy.deepcopy(v) for k, v in body.items() if k not in ("topologyPolicies", "zones")}
        metadata = extra.get("metadata") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            topology_policies=list(body.get("topologyPolicies") or []),
            zones={name: TopologyZone.from_dict(zone) for name, zone in (body.get("zones") or {}).items()},
            extra=extra,
        )
