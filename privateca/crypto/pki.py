"""X.509 validation: signed-by-CA, validity window, CA flags, name constraints, CN."""
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.backends import default_backend
from cryptography.exceptions import InvalidSignature
from typing import List, Optional, Sequence, Tuple, Union

from ..common.utils import now_utc, sha256_hex


def load_certificate(cert_path: str) -> x509.Certificate:
    """
    Load X.509 certificate from PEM file.

    Args:
        cert_path: path to PEM-encoded certificate file

    Returns:
        Certificate object
    """
    with open(cert_path, "rb") as f:
        return x509.load_pem_x509_certificate(f.read(), default_backend())


def load_private_key(
    key_path: str,
    password: Optional[Union[bytes, str]] = None
) -> rsa.RSAPrivateKey:
    """
    Load a CA private key written by write_private_key.

    Args:
        key_path: path to the PEM key file
        password: password of an encrypted key, as str or bytes

    Returns:
        RSAPrivateKey object

    Raises:
        TypeError: if the file holds a non-RSA key, or a password is
            missing for an encrypted key
        ValueError: if the password is wrong or the data is not a key
    """
    if isinstance(password, str):
        password = password.encode('utf-8')
    with open(key_path, "rb") as f:
        key = serialization.load_pem_private_key(f.read(), password=password)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise TypeError(f"{key_path} does not hold an RSA private key")
    return key


def cert_from_pem_string(cert_pem_string: str) -> x509.Certificate:
    """Parse X.509 certificate from PEM string."""
    return x509.load_pem_x509_certificate(
        cert_pem_string.encode('utf-8'),
        default_backend()
    )


def cert_to_pem_string(cert: x509.Certificate) -> str:
    """Convert certificate object to PEM string."""
    return cert.public_bytes(serialization.Encoding.PEM).decode('utf-8')


def compute_cert_fingerprint(cert: x509.Certificate) -> str:
    """Hex-encoded SHA-256 of the DER-encoded certificate."""
    return sha256_hex(cert.public_bytes(serialization.Encoding.DER))


def get_cert_common_name(cert: x509.Certificate) -> str:
    """
    Extract Common Name (CN) from certificate subject.

    Raises:
        ValueError: if the subject has no CN
    """
    cn_attrs = cert.subject.get_attributes_for_oid(x509.oid.NameOID.COMMON_NAME)
    if not cn_attrs:
        raise ValueError("Certificate has no Common Name")
    return cn_attrs[0].value


def get_dns_names(cert: x509.Certificate) -> List[str]:
    """Return the DNS entries of the subjectAltName extension, if any."""
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []
    return san.value.get_values_for_type(x509.DNSName)


def get_name_constraints(
    cert: x509.Certificate
) -> Tuple[Optional[List[str]], Optional[List[str]]]:
    """
    Extract DNS name constraints from a CA certificate.

    Returns:
        Tuple (permitted, excluded); either is None when the certificate
        places no DNS restriction of that kind
    """
    try:
        nc = cert.extensions.get_extension_for_class(x509.NameConstraints).value
    except x509.ExtensionNotFound:
        return None, None

    def dns_only(subtrees):
        if subtrees is None:
            return None
        names = [g.value for g in subtrees if isinstance(g, x509.DNSName)]
        return names or None

    return dns_only(nc.permitted_subtrees), dns_only(nc.excluded_subtrees)


def _dns_matches(name: str, constraint: str) -> bool:
    name = name.lower().rstrip('.')
    constraint = constraint.lower().rstrip('.')
    if not constraint:
        return True
    if constraint.startswith('.'):
        return name.endswith(constraint)
    return name == constraint or name.endswith('.' + constraint)


def dns_name_permitted(
    name: str,
    permitted: Optional[Sequence[str]],
    excluded: Optional[Sequence[str]] = None
) -> bool:
    """
    Check a DNS name against name constraint subtrees (RFC 5280 4.2.1.10).

    A constraint "example.com" matches "example.com" and every name below
    it; ".example.com" matches only names below it. Comparison ignores
    case.

    Args:
        name: DNS name to check
        permitted: permitted subtrees, or None for no restriction
        excluded: excluded subtrees, or None

    Returns:
        True if the name is inside a permitted subtree and outside every
        excluded one
    """
    if excluded and any(_dns_matches(name, c) for c in excluded):
        return False
    if permitted is None:
        return True
    return any(_dns_matches(name, c) for c in permitted)


def validate_certificate(
    cert: x509.Certificate,
    ca_cert: x509.Certificate,
    expected_cn: Optional[str] = None
) -> Tuple[bool, str]:
    """
    Validate an X.509 certificate against a trusted private CA.

    Checks performed:
    1. Issuer name matches CA subject
    2. Signature made by the CA key
    3. Validity period
    4. CA is marked as a CA and may sign certificates
    5. Every DNS name of the certificate satisfies the CA's name constraints
    6. Common Name (CN) match (optional)

    Args:
        cert: Certificate to validate
        ca_cert: CA certificate (trusted root)
        expected_cn: Expected Common Name (optional)

    Returns:
        Tuple (is_valid: bool, error_message: str)
        - (True, "Certificate valid") if all checks pass
        - (False, "BAD_CERT: ...") if any check fails
    """
    try:
        # Check 1: issuer chaining
        if cert.issuer != ca_cert.subject:
            return False, "BAD_CERT: Issuer does not match CA subject"

        # Check 2: Verify signature chain (signed by CA)
        try:
            ca_public_key = ca_cert.public_key()
            ca_public_key.verify(
                cert.signature,
                cert.tbs_certificate_bytes,
                padding.PKCS1v15(),
                cert.signature_hash_algorithm
            )
        except InvalidSignature:
            return False, "BAD_CERT: Invalid CA signature"

        # Check 3: Verify validity period (not expired, not before valid date)
        now = now_utc()
        if now < cert.not_valid_before_utc:
            return False, "BAD_CERT: Certificate not yet valid"
        if now > cert.not_valid_after_utc:
            return False, "BAD_CERT: Certificate expired"

        # Check 4: issuer must be a CA allowed to sign certificates
        try:
            bc = ca_cert.extensions.get_extension_for_class(x509.BasicConstraints).value
        except x509.ExtensionNotFound:
            return False, "BAD_CERT: Issuer is not a CA"
        if not bc.ca:
            return False, "BAD_CERT: Issuer is not a CA"
        try:
            ku = ca_cert.extensions.get_extension_for_class(x509.KeyUsage).value
            if not ku.key_cert_sign:
                return False, "BAD_CERT: Issuer key usage does not allow certificate signing"
        except x509.ExtensionNotFound:
            pass

        # Check 5: name constraints
        permitted, excluded = get_name_constraints(ca_cert)
        names = get_dns_names(cert)
        if not names:
            try:
                names = [get_cert_common_name(cert)]
            except ValueError:
                names = []
        for name in names:
            if not dns_name_permitted(name, permitted, excluded):
                return False, f"BAD_CERT: Name constraint violation for {name}"

        # Check 6: Verify Common Name (if expected_cn provided)
        if expected_cn:
            try:
                actual_cn = get_cert_common_name(cert)
                if actual_cn != expected_cn:
                    return False, f"BAD_CERT: Common Name mismatch (expected: {expected_cn}, got: {actual_cn})"
            except ValueError as e:
                return False, f"BAD_CERT: {str(e)}"

        return True, "Certificate valid"

    except Exception as e:
        return False, f"BAD_CERT: Validation error - {str(e)}"


def validate_certificate_from_pem(
    cert_pem_string: str,
    ca_cert_path: str,
    expected_cn: Optional[str] = None
) -> Tuple[bool, str]:
    """
    Validate certificate from PEM string against CA certificate file.

    Args:
        cert_pem_string: PEM-encoded certificate as string
        ca_cert_path: path to CA certificate PEM file
        expected_cn: Expected Common Name (optional)

    Returns:
        Tuple (is_valid: bool, error_message: str)
    """
    try:
        cert = cert_from_pem_string(cert_pem_string)
        ca_cert = load_certificate(ca_cert_path)
        return validate_certificate(cert, ca_cert, expected_cn)
    except Exception as e:
        return False, f"BAD_CERT: Failed to load certificates - {str(e)}"
