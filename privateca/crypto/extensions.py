"""X.509v3 extensions that turn a request into a scoped private CA."""
from typing import List, Sequence

from cryptography import x509

from ..common.errors import ExtensionConstructionError
from .csr import CertInfo, CertificateRequestBuilder


def add_key_usage(certinfo: CertInfo) -> x509.Extension:
    """Critical key usage: digitalSignature, keyEncipherment, keyCertSign."""
    try:
        value = x509.KeyUsage(
            digital_signature=True,
            content_commitment=False,
            key_encipherment=True,
            data_encipherment=False,
            key_agreement=False,
            key_cert_sign=True,
            crl_sign=False,
            encipher_only=False,
            decipher_only=False
        )
    except (ValueError, TypeError) as e:
        raise ExtensionConstructionError(f"KeyUsage: {e}") from e
    return certinfo.add_extension(value, critical=True)


def add_basic_constraints(certinfo: CertInfo) -> x509.Extension:
    """Mark the certificate as a CA (non-critical, no path length)."""
    try:
        value = x509.BasicConstraints(ca=True, path_length=None)
    except (ValueError, TypeError) as e:
        raise ExtensionConstructionError(f"BasicConstraints: {e}") from e
    return certinfo.add_extension(value, critical=False)


def permitted_dns_names(hostname: str, alt_names: Sequence[str], cn: str) -> List[str]:
    """
    Names the CA may sign for: hostname, each alt name in order, then the
    CA's own CN so that its self-signature stays within its constraints.
    """
    return [hostname, *alt_names, cn]


def add_name_constraints(
    certinfo: CertInfo,
    hostname: str,
    alt_names: Sequence[str]
) -> x509.Extension:
    """
    Restrict the CA to signing only the service names and itself.

    Args:
        certinfo: build record whose cn is already set
        hostname: primary service name
        alt_names: subject alternative names of the service

    Returns:
        The appended NameConstraints extension

    Raises:
        ExtensionConstructionError: if any name is not a valid DNS name
    """
    names = permitted_dns_names(hostname, alt_names, certinfo.cn)
    try:
        subtrees = [x509.DNSName(name) for name in names]
        value = x509.NameConstraints(permitted_subtrees=subtrees, excluded_subtrees=None)
    except (ValueError, TypeError) as e:
        raise ExtensionConstructionError(f"NameConstraints: {e}") from e
    return certinfo.add_extension(value, critical=False)


def add_ca_extensions(
    certinfo: CertInfo,
    hostname: str,
    alt_names: Sequence[str]
) -> None:
    """Append key usage, basic constraints and name constraints, in that order."""
    add_key_usage(certinfo)
    add_basic_constraints(certinfo)
    add_name_constraints(certinfo, hostname, alt_names)


def add_subject_key_identifier(request: CertificateRequestBuilder) -> x509.Extension:
    """
    Append a Subject Key Identifier derived from the request's public key.

    Uses the SHA-1 "hash" method of RFC 5280 section 4.2.1.2, so it can
    only run once the keypair behind the request exists.
    """
    try:
        value = x509.SubjectKeyIdentifier.from_public_key(request.public_key())
    except (ValueError, TypeError) as e:
        raise ExtensionConstructionError(f"SubjectKeyIdentifier: {e}") from e
    return request.add_extension(value, critical=False)
