import logging
from dataclasses import dataclass, field
from typing import List, Optional

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..errors import AuthorizationError

logger = logging.getLogger("nfd-master.authorization")


@dataclass
class PeerInfo:
    """
    Transport identity of the client behind one request.
    ``verified_chain`` holds the certificates the TLS handshake verified,
    leaf first; it is empty when the client sent no (valid) certificate.
    """
    address: Optional[str] = None
    tls: bool = False
    verified_chain: List[x509.Certificate] = field(default_factory=list)

    @classmethod
    def from_pem_chain(cls, address: Optional[str], pem_chain: List[str]) -> "PeerInfo":
        chain = [x509.load_pem_x509_certificate(pem.encode()) for pem in pem_chain]
        return cls(address=address, tls=True, verified_chain=chain)

    @classmethod
    def from_der(cls, address: Optional[str], der: Optional[bytes]) -> "PeerInfo":
        chain = [x509.load_der_x509_certificate(der)] if der else []
        return cls(address=address, tls=True, verified_chain=chain)


def common_name(cert: x509.Certificate) -> Optional[str]:
    attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return None
    return attrs[0].value


class PeerAuthenticator:
    """
    Checks that the client certificate of a request was issued for the node
    named in the request payload. When disabled every request is trusted.
    """

    def __init__(self, enabled: bool):
        self.enabled = enabled

    def authorize(self, peer: Optional[PeerInfo], node_name: str) -> None:
        if not self.enabled:
            return

        if peer is None:
            logger.warning("request error: failed to get peer (client)")
            raise AuthorizationError("failed to get peer (client)")
        if not peer.tls:
            logger.warning(f"request error: incorrect client credentials from '{peer.address}'")
            raise AuthorizationError("incorrect client credentials")
        if not peer.verified_chain:
            logger.warning(f"request error: client certificate verification for '{peer.address}' failed")
            raise AuthorizationError("client certificate verification failed")

        cn = common_name(peer.verified_chain[0])
        if cn != node_name:
            logger.warning(
                f"request error: authorization for {peer.address} failed: "
                f"cert valid for '{cn}', requested node name '{node_name}'"
            )
            raise AuthorizationError(
                f"request authorization failed: cert valid for '{cn}', requested node name '{node_name}'"
            )
