"""Certificate utility functions for key generation, serialization and chain checks."""

import uuid

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey


def generate_private_key(key_size: int = 2048) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def serialize_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS8, no encryption)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def deserialize_private_key(pem_data: bytes) -> RSAPrivateKey:
    """Deserialize RSA private key from PEM bytes (PKCS1 or PKCS8).

    Raises:
        ValueError: If the PEM is malformed or the key is not RSA
    """
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError("expected RSA private key")
    return key


def serialize_public_key(key: RSAPublicKey) -> bytes:
    """Serialize public key to PEM SubjectPublicKeyInfo."""
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def generate_serial_number() -> int:
    """Generate certificate serial number from UUID4.

    UUID v4 gives 122 bits of randomness, above the 64-bit CSPRNG
    minimum of the CA/Browser Forum baseline requirements.
    """
    return uuid.uuid4().int


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def create_combined_certificate(leaf_cert_pem: bytes, issuer_cert_pem: bytes) -> bytes:
    """Append the issuer PEM block directly after the leaf PEM block."""
    return leaf_cert_pem + issuer_cert_pem


def key_matches_certificate(key: RSAPrivateKey, cert: x509.Certificate) -> bool:
    """Return True if the certificate carries the public half of key."""
    public_key = cert.public_key()
    if not isinstance(public_key, RSAPublicKey):
        return False
    return public_key.public_numbers() == key.public_key().public_numbers()


def validate_issued_by(cert: x509.Certificate, issuer_cert: x509.Certificate) -> bool:
    """Verify cert was signed by issuer_cert.

    Returns True if the signature and issuer name check out, False otherwise.
    """
    try:
        cert.verify_directly_issued_by(issuer_cert)
        return True
    except (ValueError, TypeError, InvalidSignature):
        return False
