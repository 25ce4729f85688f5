import asyncio
import ssl

import pytest
from httpx import ASGITransport, AsyncClient

from nfd_master.api_gateway.ca import generate_node_cert, save_key_cert
from nfd_master.api_gateway.service import APIGatewayService, create_app
from nfd_master.api_gateway.transport import get_peer_info
from nfd_master.authorization.peer import PeerInfo
from nfd_master.config import Settings
from nfd_master.errors import ConflictError
from nfd_master.label_reconciler.service import LabelReconciler
from nfd_master.reporting.service import ReportingService
from nfd_master.topology_reconciler.service import TopologyReconciler

BASE_URL = "http://test"
NS = "feature.node.kubernetes.io/"


def _app(settings, node_store, topology_store):
    reporting = ReportingService(settings, LabelReconciler(node_store), TopologyReconciler(topology_store))
    return create_app(reporting)


@pytest.mark.asyncio
async def test_set_labels(settings, node_store, topology_store):
    app = _app(settings, node_store, topology_store)

    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client:
        resp = await client.post("/api/v1/labeler/set-labels", json={
            "node_name": "n1", "nfd_version": "v0.8.0", "labels": {"cpu-model": "xeon", "gpu": "4"},
        })

    assert resp.status_code == 200
    assert resp.json() == {}
    assert node_store.nodes["n1"].labels == {NS + "cpu-model": "xeon"}
    assert node_store.nodes["n1"].capacity == {NS + "gpu": "4"}


@pytest.mark.asyncio
async def test_update_topology(settings, node_store, topology_store):
    app = _app(settings, node_store, topology_store)

    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client:
        resp = await client.post("/api/v1/topology/update", json={
            "node_name": "n1",
            "topology_policies": ["single-numa-node"],
            "zones": {"node-0": {"type": "Node", "costs": {"node-0": 10},
                                 "resources": {"cpu": {"capacity": 4, "allocatable": 3}}}},
        })

    assert resp.status_code == 200
    record = topology_store.records["default/n1"]
    assert record.zones["node-0"].resources["cpu"].allocatable == 3


@pytest.mark.asyncio
async def test_plain_connection_is_rejected_when_verifying(node_store, topology_store):
    settings = Settings(_env_file=None, VERIFY_NODE_NAME=True)
    app = _app(settings, node_store, topology_store)

    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client:
        resp = await client.post("/api/v1/labeler/set-labels", json={"node_name": "n1", "labels": {"a": "1"}})

    assert resp.status_code == 403
    assert resp.json()["detail"] == "incorrect client credentials"
    assert node_store.updates == []


@pytest.mark.asyncio
async def test_peer_certificate_decides_authorization(ca, node_store, topology_store):
    ca_key, ca_cert = ca
    _, cert = generate_node_cert("n2", ca_key, ca_cert)
    settings = Settings(_env_file=None, VERIFY_NODE_NAME=True)
    app = _app(settings, node_store, topology_store)
    app.dependency_overrides[get_peer_info] = lambda: PeerInfo(address="10.0.0.2:4000", tls=True, verified_chain=[cert])

    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client:
        denied = await client.post("/api/v1/labeler/set-labels", json={"node_name": "n1", "labels": {"a": "1"}})
        allowed = await client.post("/api/v1/labeler/set-labels", json={"node_name": "n2", "labels": {"a": "1"}})

    assert denied.status_code == 403
    assert "requested node name 'n1'" in denied.json()["detail"]
    assert allowed.status_code == 200
    assert node_store.nodes["n1"].labels == {}
    assert node_store.nodes["n2"].labels == {NS + "a": "1"}


@pytest.mark.asyncio
async def test_store_errors_map_to_status_codes(settings, node_store, topology_store):
    app = _app(settings, node_store, topology_store)

    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client:
        missing = await client.post("/api/v1/labeler/set-labels", json={"node_name": "ghost"})
        node_store.fail_update = ConflictError("object has been modified", status=409)
        conflict = await client.post("/api/v1/labeler/set-labels", json={"node_name": "n1"})
        health = await client.get("/health")

    assert missing.status_code == 404
    assert conflict.status_code == 409
    assert health.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_malformed_request_is_rejected(settings, node_store, topology_store):
    app = _app(settings, node_store, topology_store)

    async with AsyncClient(transport=ASGITransport(app=app), base_url=BASE_URL) as client:
        resp = await client.post("/api/v1/labeler/set-labels", json={"labels": {"a": "1"}})

    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_wait_for_ready_times_out_before_start(settings, node_store, topology_store):
    gateway = APIGatewayService(settings, _app(settings, node_store, topology_store), asyncio.Event())
    assert await gateway.wait_for_ready(0.01) is False

    gateway.ready.set()
    assert await gateway.wait_for_ready(0.01) is True


def _client_context(tmp_path, ca_cert_file, name, ca_key, ca_cert):
    key, cert = generate_node_cert(name, ca_key, ca_cert)
    save_key_cert(str(tmp_path / name), key, cert)
    context = ssl.create_default_context(cafile=ca_cert_file)
    context.check_hostname = False
    context.load_cert_chain(str(tmp_path / f"{name}.crt"), str(tmp_path / f"{name}.key"))
    return context


@pytest.mark.asyncio
async def test_mutual_tls_listener_authorizes_by_client_certificate(tmp_path, ca, node_store, topology_store):
    ca_key, ca_cert = ca
    save_key_cert(str(tmp_path / "ca"), ca_key, ca_cert)
    server_key, server_cert = generate_node_cert("nfd-master", ca_key, ca_cert, server=True, san_names=["localhost"])
    save_key_cert(str(tmp_path / "master"), server_key, server_cert)
    settings = Settings(
        _env_file=None,
        API_HOST="127.0.0.1",
        PORT=0,
        VERIFY_NODE_NAME=True,
        CA_FILE=str(tmp_path / "ca.crt"),
        CERT_FILE=str(tmp_path / "master.crt"),
        KEY_FILE=str(tmp_path / "master.key"),
    )
    gateway = APIGatewayService(settings, _app(settings, node_store, topology_store))
    await gateway.start()
    try:
        port = gateway._server.servers[0].sockets[0].getsockname()[1]
        url = f"https://127.0.0.1:{port}/api/v1/labeler/set-labels"
        body = {"node_name": "n1", "labels": {"a": "1"}}

        n1 = _client_context(tmp_path, settings.CA_FILE, "n1", ca_key, ca_cert)
        async with AsyncClient(verify=n1) as client:
            allowed = await client.post(url, json=body)

        n2 = _client_context(tmp_path, settings.CA_FILE, "n2", ca_key, ca_cert)
        async with AsyncClient(verify=n2) as client:
            denied = await client.post(url, json=body)
    finally:
        await gateway.stop()

    assert allowed.status_code == 200
    assert denied.status_code == 403
    assert "cert valid for 'n2'" in denied.json()["detail"]
    assert node_store.nodes["n1"].labels == {NS + "a": "1"}
    assert len(node_store.updates) == 1
