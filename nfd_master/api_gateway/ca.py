from datetime import datetime, timedelta, UTC
from typing import List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

ORGANIZATION = "Node Feature Discovery"


def generate_ca(common_name: str = "nfd-ca", days: int = 3650) -> Tuple[rsa.RSAPrivateKey, x509.Certificate]:
    """Generate a self-signed CA used to issue master and worker certificates."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
    )
    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, ORGANIZATION),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    cert = x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        issuer
    ).public_key(
        private_key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        datetime.now(UTC)
    ).not_valid_after(
        datetime.now(UTC) + timedelta(days=days)
    ).add_extension(
        x509.BasicConstraints(ca=True, path_length=None), critical=True,
    ).add_extension(
        # Python ssl requires KeyUsage with keyCertSign on CA certs used as trust anchors
        x509.KeyUsage(
            digital_signature=True,
            content_commitment=False,
            key_encipherment=False,
            data_encipherment=False,
            key_agreement=False,
            key_cert_sign=True,
            crl_sign=True,
            encipher_only=False,
            decipher_only=False,
        ), critical=True,
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()), critical=False,
    ).add_extension(
        # Self-signed CA: AKI == SKI
        x509.AuthorityKeyIdentifier.from_issuer_public_key(private_key.public_key()), critical=False,
    ).sign(private_key, hashes.SHA256())
    return private_key, cert


def generate_node_cert(
        common_name: str,
        ca_key: rsa.RSAPrivateKey,
        ca_cert: x509.Certificate,
        server: bool = False,
        san_names: Optional[List[str]] = None,
        days: int = 365,
) -> Tuple[rsa.RSAPrivateKey, x509.Certificate]:
    """
    Issue a certificate signed by the CA.
    Worker certificates carry the node name as subject common name; that is
    what the master compares against the node name of each request.
    """
    key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
    )
    subject = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, ORGANIZATION),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    usage = ExtendedKeyUsageOID.SERVER_AUTH if server else ExtendedKeyUsageOID.CLIENT_AUTH

    builder = x509.CertificateBuilder().subject_name(
        subject
    ).issuer_name(
        ca_cert.subject
    ).public_key(
        key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        datetime.now(UTC)
    ).not_valid_after(
        datetime.now(UTC) + timedelta(days=days)
    ).add_extension(
        x509.KeyUsage(
            digital_signature=True,
            content_commitment=False,
            key_encipherment=True,
            data_encipherment=False,
            key_agreement=False,
            key_cert_sign=False,
            crl_sign=False,
            encipher_only=False,
            decipher_only=False
        ),
        critical=True
    ).add_extension(
        x509.ExtendedKeyUsage([usage]),
        critical=True
    ).add_extension(
        x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False,
    ).add_extension(
        # AKI required by Python ssl for chain validation
        x509.AuthorityKeyIdentifier.from_issuer_public_key(ca_key.public_key()), critical=False,
    )
    if san_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in san_names]),
            critical=False,
        )
    return key, builder.sign(ca_key, hashes.SHA256())


def cert_to_pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode("utf-8")


def key_to_pem(key: rsa.RSAPrivateKey) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


def save_key_cert(path_prefix: str, key: rsa.RSAPrivateKey, cert: x509.Certificate) -> None:
    with open(f"{path_prefix}.key", "w") as f:
        f.write(key_to_pem(key))
    with open(f"{path_prefix}.crt", "w") as f:
        f.write(cert_to_pem(cert))


def load_key_cert(path_prefix: str) -> Tuple[rsa.RSAPrivateKey, x509.Certificate]:
    with open(f"{path_prefix}.key", "rb") as f:
        key = serialization.load_pem_private_key(f.read(), password=None)
    with open(f"{path_prefix}.crt", "rb") as f:
        cert = x509.load_pem_x509_certificate(f.read())
    return key, cert
