"""
Pure diff computations for label reconciliation.

Nothing in here talks to the object store: the reconciler fetches a node,
runs these functions against the snapshot and applies the result.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Set

from ..constants import (
    ANNOTATION_NS,
    EXTENDED_RESOURCES_ANNOTATION,
    LABEL_NS,
    LEGACY_LABEL_PREFIXES,
)
from ..models.node import Node, StatusPatchOp, quantity_to_int


def add_ns(key: str, ns: str = LABEL_NS) -> str:
    """Qualify a bare key with ``ns``; keys that already carry a namespace are kept."""
    if "/" in key:
        return key
    return ns + key


def split_key_list(value: str) -> List[str]:
    """Parse a comma-joined bookkeeping annotation, skipping empty entries."""
    return [key for key in dict.fromkeys(value.split(",")) if key]


def join_key_list(keys: Iterable[str]) -> str:
    return ",".join(sorted(keys))


@dataclass
class LabelDiff:
    add: Dict[str, str] = field(default_factory=dict)
    remove: Set[str] = field(default_factory=set)

    def apply(self, labels: Dict[str, str]) -> None:
        for key in self.remove:
            labels.pop(key, None)
        labels.update(self.add)

    def __bool__(self) -> bool:
        return bool(self.add or self.remove)


def compute_label_diff(
        current: Mapping[str, str],
        previous_keys: Iterable[str],
        new_labels: Mapping[str, str],
) -> LabelDiff:
    """
    Compute the label mutation taking ``current`` to the newly reported set.

    Keys published last time (``previous_keys``) and every key under a legacy
    prefix are stale unless reported again. Bare keys are qualified with the
    default label namespace on both sides.
    """
    desired = {add_ns(key): value for key, value in new_labels.items()}

    stale = {add_ns(key) for key in previous_keys}
    stale.update(key for key in current if key.startswith(LEGACY_LABEL_PREFIXES))

    remove = {key for key in stale if key in current and key not in desired}
    add = {key: value for key, value in desired.items() if current.get(key) != value}
    return LabelDiff(add=add, remove=remove)


def create_status_op(op: str, resource: str, path: str, value: str | None = None) -> StatusPatchOp:
    resource = add_ns(resource)
    escaped = resource.replace("~", "~0").replace("/", "~1")
    return StatusPatchOp(op=op, path=f"/status/{path}/{escaped}", value=value)


def _same_quantity(quantity: str, value: str) -> bool:
    try:
        return quantity_to_int(quantity) == int(value)
    except ValueError:
        return False


def extended_resource_ops(node: Node, extended_resources: Mapping[str, str]) -> List[StatusPatchOp]:
    """
    Status patch operations that bring the node capacity in line with
    ``extended_resources``. Must run against the node as fetched, before the
    bookkeeping annotations are overwritten.
    """
    ops: List[StatusPatchOp] = []
    needed = {add_ns(name) for name in extended_resources}

    previous = split_key_list(node.annotations.get(ANNOTATION_NS + EXTENDED_RESOURCES_ANNOTATION, ""))
    for resource in previous:
        if add_ns(resource) in node.capacity and add_ns(resource) not in needed:
            ops.append(create_status_op("remove", resource, "capacity"))
            ops.append(create_status_op("remove", resource, "allocatable"))

    for resource in sorted(extended_resources):
        value = extended_resources[resource]
        quantity = node.capacity.get(add_ns(resource))
        if quantity is None:
            # allocatable gets added implicitly after adding to capacity
            ops.append(create_status_op("add", resource, "capacity", value))
        elif not _same_quantity(quantity, value):
            ops.append(create_status_op("replace", resource, "capacity", value))
            ops.append(create_status_op("replace", resource, "allocatable", value))

    return ops
