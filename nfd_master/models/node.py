from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional

from kubernetes.utils import parse_quantity


@dataclass
class Node:
    """
    Snapshot of a cluster node as seen by the reconcilers.
    Only the fields the master reads or writes are modelled; the store keeps
    the API object as read in ``raw`` so that a replace does not drop the rest.
    """
    name: str
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    capacity: Dict[str, str] = field(default_factory=dict)
    allocatable: Dict[str, str] = field(default_factory=dict)
    resource_version: Optional[str] = None
    raw: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class StatusPatchOp:
    """One JSON-patch operation against the node status subtree."""
    op: Literal["add", "replace", "remove"]
    path: str
    value: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {"op": self.op, "path": self.path}
        if self.value:
            data["value"] = self.value
        return data


def quantity_to_int(quantity: str) -> int:
    """
    Integer value of a Kubernetes quantity string ("4", "2k", "1Gi").
    Raises ValueError for quantities with a fractional part ("1500m").
    """
    value = parse_quantity(quantity)
    if value != value.to_integral_value():
        raise ValueError(f"quantity {quantity!r} is not an integer")
    return int(value)
