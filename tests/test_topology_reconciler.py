import pytest

from nfd_master.errors import ConflictError, StoreError
from nfd_master.models.topology import NodeTopologyRecord, ResourceInfo, TopologyZone
from nfd_master.schemas.topology import Zone
from nfd_master.topology_reconciler.service import TopologyReconciler, convert_zones


def _zones():
    return {
        "node-0": Zone(
            type="Node",
            costs={"node-0": 10, "node-1": 20},
            resources={"cpu": {"capacity": 8, "allocatable": 6}},
        ),
        "node-1": Zone(type="Node", resources={"cpu": {"capacity": 8, "allocatable": 8}}),
    }


def test_convert_zones():
    converted = convert_zones(_zones())
    assert converted["node-0"] == TopologyZone(
        type="Node",
        parent="",
        costs={"node-0": 10, "node-1": 20},
        resources={"cpu": ResourceInfo(capacity=8, allocatable=6)},
    )
    assert converted["node-1"].costs == {}


@pytest.mark.asyncio
async def test_missing_record_is_created(topology_store):
    reconciler = TopologyReconciler(topology_store)

    await reconciler.reconcile("n1", ["single-numa-node"], _zones(), "default")

    assert len(topology_store.created) == 1
    record = topology_store.records["default/n1"]
    assert record.name == "n1"
    assert record.topology_policies == ["single-numa-node"]
    assert set(record.zones) == {"node-0", "node-1"}
    assert topology_store.updated == []


@pytest.mark.asyncio
async def test_existing_record_gets_zones_replaced(topology_store):
    topology_store.records["default/n1"] = NodeTopologyRecord(
        name="n1",
        namespace="default",
        topology_policies=["best-effort"],
        zones={"stale": TopologyZone(type="Node")},
        extra={"metadata": {"name": "n1", "resourceVersion": "42", "labels": {"owner": "x"}}},
    )

    await TopologyReconciler(topology_store).reconcile("n1", ["single-numa-node"], _zones(), "default")

    assert topology_store.created == []
    record = topology_store.updated[0]
    assert set(record.zones) == {"node-0", "node-1"}
    # only the zones are managed on update
    assert record.topology_policies == ["best-effort"]
    assert record.extra["metadata"]["resourceVersion"] == "42"
    assert record.extra["metadata"]["labels"] == {"owner": "x"}


@pytest.mark.asyncio
async def test_fetch_error_aborts(topology_store):
    topology_store.fail_get = StoreError("forbidden", status=403)

    with pytest.raises(StoreError):
        await TopologyReconciler(topology_store).reconcile("n1", [], _zones(), "default")

    assert topology_store.created == []
    assert topology_store.updated == []


@pytest.mark.asyncio
async def test_update_conflict_keeps_error_kind(topology_store):
    topology_store.records["default/n1"] = NodeTopologyRecord(name="n1", namespace="default")

    async def conflict(record):
        raise ConflictError("object has been modified", status=409)

    topology_store.update_topology = conflict

    with pytest.raises(ConflictError, match="failed to update NodeResourceTopology default/n1"):
        await TopologyReconciler(topology_store).reconcile("n1", [], _zones(), "default")


def test_record_body_round_trip_keeps_unmanaged_fields():
    body = {
        "apiVersion": "topology.node.k8s.io/v1alpha1",
        "kind": "NodeResourceTopology",
        "metadata": {"name": "n1", "namespace": "default", "resourceVersion": "7"},
        "topologyPolicies": ["none"],
        "zones": {"node-0": {"type": "Node", "parent": "", "costs": {"node-0": 10},
                             "resources": {"cpu": {"capacity": 4, "allocatable": 3}}}},
    }
    record = NodeTopologyRecord.from_body(body)
    assert record.zones["node-0"].resources["cpu"] == ResourceInfo(capacity=4, allocatable=3)
    assert record.to_body() == body
