from typing import Dict, List

from pydantic import BaseModel, Field


class ResourceInfo(BaseModel):
    capacity: int = 0
    allocatable: int = 0


class Zone(BaseModel):
    type: str = ""
    parent: str = ""
    costs: Dict[str, int] = Field(default_factory=dict)
    resources: Dict[str, ResourceInfo] = Field(default_factory=dict)


class NodeTopologyRequest(BaseModel):
    """Per-node NUMA/zone topology report sent by the topology updater."""
    node_name: str
    nfd_version: str = ""
    topology_policies: List[str] = Field(default_factory=list)
    zones: Dict[str, Zone] = Field(default_factory=dict)


class NodeTopologyResponse(BaseModel):
    pass
