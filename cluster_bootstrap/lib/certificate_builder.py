"""Certificate builder for X.509 certificate construction."""

from datetime import datetime, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from .cert_utils import generate_private_key, generate_serial_number
from .models import CertificateProfile, KeyUsage, Purpose, SigningPair

_PURPOSE_OIDS = {
    Purpose.SERVER_AUTH: ExtendedKeyUsageOID.SERVER_AUTH,
    Purpose.CLIENT_AUTH: ExtendedKeyUsageOID.CLIENT_AUTH,
}


def profile_to_x509_name(profile: CertificateProfile) -> x509.Name:
    """Convert profile subject fields to a cryptography x509.Name."""
    attributes = [x509.NameAttribute(NameOID.ORGANIZATION_NAME, o) for o in profile.organization]
    attributes += [
        x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, ou)
        for ou in profile.organizational_unit
    ]
    attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, profile.common_name))
    return x509.Name(attributes)


def profile_to_key_usage(key_usages: KeyUsage) -> x509.KeyUsage:
    """Convert a KeyUsage bitset to the X.509 extension value."""
    return x509.KeyUsage(
        digital_signature=KeyUsage.DIGITAL_SIGNATURE in key_usages,
        content_commitment=False,
        key_encipherment=KeyUsage.KEY_ENCIPHERMENT in key_usages,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=KeyUsage.CERT_SIGN in key_usages,
        crl_sign=KeyUsage.CRL_SIGN in key_usages,
        encipher_only=False,
        decipher_only=False,
    )


def is_ca_certificate(cert: x509.Certificate) -> bool:
    """Return True if cert carries BasicConstraints with CA=true."""
    try:
        constraints = cert.extensions.get_extension_for_class(x509.BasicConstraints)
    except x509.ExtensionNotFound:
        return False
    return constraints.value.ca


class CertificateBuilder:
    """Builds X.509 certificates for the cluster trust hierarchy."""

    @staticmethod
    def build_certificate(
        profile: CertificateProfile,
        public_key: RSAPublicKey,
        issuer_name: x509.Name,
        issuer_key: RSAPrivateKey,
    ) -> x509.Certificate:
        """Build a certificate whose extensions mirror the profile exactly.

        Args:
            profile: Identity, usages, SANs and validity for the certificate
            public_key: Public key to certify
            issuer_name: Subject of the issuing CA (or the profile subject when self-signed)
            issuer_key: Private key used to sign

        Returns:
            Signed X.509 certificate
        """
        not_before = datetime.now(timezone.utc)
        not_after = not_before + profile.validity

        builder = (
            x509.CertificateBuilder()
            .subject_name(profile_to_x509_name(profile))
            .issuer_name(issuer_name)
            .public_key(public_key)
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=profile.is_ca, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(public_key),
                critical=False,
            )
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_key.public_key()),
                critical=False,
            )
        )

        if profile.key_usages != KeyUsage.NONE:
            builder = builder.add_extension(profile_to_key_usage(profile.key_usages), critical=True)

        if profile.extended_key_usages:
            # Sorted so the extension encoding does not depend on set order
            purposes = sorted(profile.extended_key_usages, key=lambda p: p.value)
            builder = builder.add_extension(
                x509.ExtendedKeyUsage([_PURPOSE_OIDS[p] for p in purposes]),
                critical=False,
            )

        if profile.dns_names or profile.ip_addresses:
            names: list[x509.GeneralName] = [x509.DNSName(n) for n in profile.dns_names]
            names += [x509.IPAddress(ip) for ip in profile.ip_addresses]
            builder = builder.add_extension(x509.SubjectAlternativeName(names), critical=False)

        return builder.sign(issuer_key, hashes.SHA256())

    @staticmethod
    def sign(
        profile: CertificateProfile,
        issuer: SigningPair | None = None,
        key_size: int = 2048,
    ) -> SigningPair:
        """Generate a fresh key and certificate for profile.

        With no issuer the certificate is self-signed, which is only allowed
        for CA profiles.

        Args:
            profile: Certificate profile to mint
            issuer: CA signing pair, or None for a self-signed root
            key_size: RSA key size for the new key

        Returns:
            SigningPair with the new private key and certificate

        Raises:
            ValueError: If self-signing a non-CA profile or the issuer is not a CA
        """
        if issuer is None and not profile.is_ca:
            raise ValueError(f"cannot self-sign non-CA profile {profile.common_name!r}")
        if issuer is not None and not is_ca_certificate(issuer.certificate):
            raise ValueError("issuer certificate is not a CA")

        key = generate_private_key(key_size)
        if issuer is None:
            cert = CertificateBuilder.build_certificate(
                profile=profile,
                public_key=key.public_key(),
                issuer_name=profile_to_x509_name(profile),
                issuer_key=key,
            )
        else:
            cert = CertificateBuilder.build_certificate(
                profile=profile,
                public_key=key.public_key(),
                issuer_name=issuer.certificate.subject,
                issuer_key=issuer.private_key,
            )
        return SigningPair(private_key=key, certificate=cert)
