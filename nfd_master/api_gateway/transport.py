import asyncio

from fastapi import Request
from uvicorn.protocols.http.h11_impl import H11Protocol

from ..authorization.peer import PeerInfo

# Key of the PeerInfo in the per-connection ASGI state
PEER_STATE_KEY = "nfd_peer"


def peer_from_transport(transport: asyncio.BaseTransport) -> PeerInfo:
    """
    Read the client identity off a (possibly TLS) transport.
    The ssl module only returns the decoded peer certificate when the
    handshake verified it against the configured CA.
    """
    peername = transport.get_extra_info("peername")
    address = f"{peername[0]}:{peername[1]}" if peername else None

    ssl_object = transport.get_extra_info("ssl_object")
    if ssl_object is None:
        return PeerInfo(address=address, tls=False)
    if not ssl_object.getpeercert():
        return PeerInfo(address=address, tls=True)
    return PeerInfo.from_der(address, ssl_object.getpeercert(binary_form=True))


class PeerCertH11Protocol(H11Protocol):
    """
    uvicorn HTTP/1.1 protocol that exposes the verified client certificate
    of the connection to request handlers via ``request.state``.
    """

    def connection_made(self, transport: asyncio.Transport) -> None:
        super().connection_made(transport)
        self.app_state = {**self.app_state, PEER_STATE_KEY: peer_from_transport(transport)}


def get_peer_info(request: Request) -> PeerInfo:
    """
    FastAPI dependency returning the transport identity of the caller.
    Falls back to the ASGI "tls" extension for servers that implement it.
    """
    peer = request.scope.get("state", {}).get(PEER_STATE_KEY)
    if peer is not None:
        return peer

    client = request.client
    address = f"{client.host}:{client.port}" if client else None
    tls = request.scope.get("extensions", {}).get("tls")
    if tls is None:
        return PeerInfo(address=address, tls=False)
    if tls.get("client_cert_error"):
        return PeerInfo(address=address, tls=True)
    return PeerInfo.from_pem_chain(address, tls.get("client_cert_chain") or [])
