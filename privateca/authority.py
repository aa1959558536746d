"""
Private CA creation.

Builds the CA identity, plans its extensions, generates the keypair,
finalizes the request and self-signs it. Every step raises a
PrivateCAError subclass on failure; nothing is returned unless the whole
sequence succeeds.
"""
from typing import Callable, NamedTuple, Optional

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from .common.options import Options, Verbosity
from .common.utils import log_debug, log_verbose, low_word
from .crypto.csr import CertInfo, new_csr, sign_csr
from .crypto.extensions import add_ca_extensions, add_subject_key_identifier
from .crypto.keys import generate_ca_key, generate_serial

DebugSink = Callable[[bytes], None]


class PrivateCA(NamedTuple):
    cert: x509.Certificate
    key: rsa.RSAPrivateKey


def ca_common_name(serial: int, hostname: str) -> str:
    """Common Name of the CA: ca-<low word of serial>.<hostname>."""
    return f"ca-{low_word(serial)}.{hostname}"


def build_identity(options: Options, serial: int) -> CertInfo:
    """
    Populate a CertInfo with the subject fields from options.

    Args:
        options: CA creation options
        serial: serial number of the CA certificate

    Returns:
        CertInfo with subject fields set and no extensions

    Raises:
        IdentityError: if the subject cannot be encoded
    """
    certinfo = CertInfo(options.hash_fn)
    certinfo.country = options.country
    certinfo.state = options.state
    certinfo.locality = options.locality
    certinfo.org = options.org
    certinfo.org_unit = options.org_unit
    certinfo.cn = ca_common_name(serial, options.hostname)
    # fail before key generation if the subject cannot be encoded
    certinfo.subject_name()
    return certinfo


def create_private_ca(
    options: Options,
    serial: Optional[int] = None,
    debug_sink: Optional[DebugSink] = None
) -> PrivateCA:
    """
    Create a self-signed CA scoped to the service names in options.

    Args:
        options: validated CA creation options
        serial: certificate serial; a random one is generated when None
        debug_sink: receives the PEM of the not yet finalized CSR when
            verbosity is DEBUG

    Returns:
        PrivateCA holding the certificate and its RSA 4096 private key

    Raises:
        PrivateCAError: if any step fails
    """
    verbosity = options.verbosity

    if serial is None:
        serial = generate_serial()

    certinfo = build_identity(options, serial)

    # Key usage, CA flag and name constraints; SKID needs the key first
    add_ca_extensions(certinfo, options.hostname, options.subject_alt_names)

    log_verbose(verbosity, "Generating RSA key for private CA.")
    key = generate_ca_key()

    log_verbose(verbosity, "Generating CSR for private CA.")
    request = new_csr(certinfo, key)

    if verbosity >= Verbosity.DEBUG and debug_sink is not None:
        debug_sink(request.to_pem())

    log_debug(verbosity, "Creating SubjectKeyIdentifier")
    add_subject_key_identifier(request)

    csr = request.finalize()

    log_verbose(verbosity, "Signing CSR for private CA.")
    cert = sign_csr(csr, serial, options.lifetime, None, key, options.hash_fn)

    return PrivateCA(cert, key)
