"""CertInfo build record, CSR builder and CSR signing."""
import datetime
from typing import List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from ..common.errors import (
    ExtensionConstructionError,
    IdentityError,
    RequestFinalizationError,
    SigningError,
)
from ..common.options import HashAlgorithm
from ..common.utils import now_utc


class CertInfo:
    """
    Mutable description of a certificate that is about to be requested.

    Subject fields are plain strings; empty fields are left out of the
    distinguished name. Extensions are kept in insertion order and end
    up in the certificate in that same order.
    """

    def __init__(self, hash_fn: HashAlgorithm):
        self.hash_fn = hash_fn
        self.country = ""
        self.state = ""
        self.locality = ""
        self.org = ""
        self.org_unit = ""
        self.cn = ""
        self.extensions: List[x509.Extension] = []

    def add_extension(self, value: x509.ExtensionType, critical: bool) -> x509.Extension:
        """
        Append an extension.

        Args:
            value: constructed extension value
            critical: criticality flag

        Returns:
            The appended Extension

        Raises:
            ExtensionConstructionError: if an extension with the same OID
                is already present
        """
        if any(ext.oid == value.oid for ext in self.extensions):
            raise ExtensionConstructionError(
                f"Duplicate extension {value.oid.dotted_string}"
            )
        ext = x509.Extension(value.oid, critical, value)
        self.extensions.append(ext)
        return ext

    def subject_name(self) -> x509.Name:
        """
        Build the distinguished name (C, ST, L, O, OU, CN).

        Raises:
            IdentityError: if the library rejects an attribute value
        """
        fields = [
            (NameOID.COUNTRY_NAME, self.country),
            (NameOID.STATE_OR_PROVINCE_NAME, self.state),
            (NameOID.LOCALITY_NAME, self.locality),
            (NameOID.ORGANIZATION_NAME, self.org),
            (NameOID.ORGANIZATIONAL_UNIT_NAME, self.org_unit),
            (NameOID.COMMON_NAME, self.cn),
        ]
        try:
            return x509.Name([
                x509.NameAttribute(oid, value) for oid, value in fields if value
            ])
        except ValueError as e:
            raise IdentityError(f"Invalid subject: {e}") from e


class CertificateRequestBuilder:
    """
    Binds a CertInfo to a keypair until the request is finalized.

    The subject is fixed when the builder is created. Extensions keep
    accumulating in the CertInfo until finalize() signs the request;
    after that the builder refuses further changes.
    """

    def __init__(self, certinfo: CertInfo, key: rsa.RSAPrivateKey):
        self.certinfo = certinfo
        self._key = key
        self.subject = certinfo.subject_name()
        self._csr: Optional[x509.CertificateSigningRequest] = None

    @property
    def finalized(self) -> bool:
        return self._csr is not None

    def public_key(self) -> rsa.RSAPublicKey:
        return self._key.public_key()

    def add_extension(self, value: x509.ExtensionType, critical: bool) -> x509.Extension:
        if self.finalized:
            raise RequestFinalizationError("Request already finalized")
        return self.certinfo.add_extension(value, critical)

    def _sign(self) -> x509.CertificateSigningRequest:
        builder = x509.CertificateSigningRequestBuilder().subject_name(self.subject)
        for ext in self.certinfo.extensions:
            builder = builder.add_extension(ext.value, critical=ext.critical)
        return builder.sign(self._key, self.certinfo.hash_fn.to_hash())

    def to_pem(self) -> bytes:
        """
        PEM snapshot of the request as it currently stands.

        The snapshot is signed so it can be encoded; it does not finalize
        the builder.
        """
        try:
            csr = self._csr if self.finalized else self._sign()
        except (ValueError, TypeError) as e:
            raise RequestFinalizationError(f"Failed to encode CSR: {e}") from e
        return csr.public_bytes(serialization.Encoding.PEM)

    def finalize(self) -> x509.CertificateSigningRequest:
        """
        Attach all accumulated extensions and sign the request.

        Returns:
            Immutable CertificateSigningRequest

        Raises:
            RequestFinalizationError: if already finalized, if signing
                fails, or if the resulting self-signature does not verify
        """
        if self.finalized:
            raise RequestFinalizationError("Request already finalized")
        try:
            csr = self._sign()
        except (ValueError, TypeError) as e:
            raise RequestFinalizationError(f"Failed to finalize CSR: {e}") from e
        if not csr.is_signature_valid:
            raise RequestFinalizationError("CSR self-signature does not verify")
        self._csr = csr
        return csr


def new_csr(certinfo: CertInfo, key: rsa.RSAPrivateKey) -> CertificateRequestBuilder:
    """Create a request builder for certinfo and key."""
    try:
        return CertificateRequestBuilder(certinfo, key)
    except (ValueError, TypeError) as e:
        raise RequestFinalizationError(f"Failed to create CSR: {e}") from e


def sign_csr(
    csr: x509.CertificateSigningRequest,
    serial: int,
    lifetime: int,
    issuer_cert: Optional[x509.Certificate],
    signing_key: rsa.RSAPrivateKey,
    hash_fn: HashAlgorithm
) -> x509.Certificate:
    """
    Issue a certificate for a finalized CSR.

    Subject, public key and extensions (in order) are taken from the
    request. With no issuer certificate the result is self-issued:
    issuer equals subject.

    Args:
        csr: finalized request
        serial: certificate serial number
        lifetime: validity in days, starting now
        issuer_cert: issuing CA certificate, or None for self-signing
        signing_key: issuer's private key
        hash_fn: signature digest

    Returns:
        Signed Certificate

    Raises:
        SigningError: if the request signature is invalid or signing fails
    """
    if not csr.is_signature_valid:
        raise SigningError("CSR signature does not verify")

    issuer = issuer_cert.subject if issuer_cert is not None else csr.subject
    not_before = now_utc()
    not_after = not_before + datetime.timedelta(days=lifetime)

    try:
        builder = (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(issuer)
            .public_key(csr.public_key())
            .serial_number(serial)
            .not_valid_before(not_before)
            .not_valid_after(not_after)
        )
        for ext in csr.extensions:
            builder = builder.add_extension(ext.value, critical=ext.critical)
        return builder.sign(signing_key, hash_fn.to_hash())
    except (ValueError, TypeError) as e:
        raise SigningError(f"Failed to sign certificate: {e}") from e
