"""PEM output for the CA certificate, its private key and debug CSRs."""
import os
from typing import Iterable, Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ..common.errors import OutputError

PRIVATE_KEY_MODE = 0o600
PUBLIC_MODE = 0o644


def _write(path: str, data: bytes, mode: int, overwrite: bool) -> None:
    """
    Write data to path with the given permissions.

    Raises:
        OutputError: if the file exists and overwrite is False, or the
            write fails
    """
    directory = os.path.dirname(path)
    flags = os.O_WRONLY | os.O_CREAT | (os.O_TRUNC if overwrite else os.O_EXCL)
    try:
        if directory:
            os.makedirs(directory, exist_ok=True)
        fd = os.open(path, flags, mode)
    except FileExistsError as e:
        raise OutputError(f"{path} already exists (use --force to overwrite)") from e
    except OSError as e:
        raise OutputError(f"Failed to open {path}: {e}") from e

    with os.fdopen(fd, 'wb') as f:
        f.write(data)
    # O_CREAT mode is ignored for files that already existed
    os.chmod(path, mode)


def check_writable(paths: Iterable[str], overwrite: bool = False) -> None:
    """
    Refuse to start when an output file is already present.

    Raises:
        OutputError: if overwrite is False and any path exists
    """
    if overwrite:
        return
    for path in paths:
        if os.path.exists(path):
            raise OutputError(f"{path} already exists (use --force to overwrite)")


def write_certificate(cert: x509.Certificate, path: str, overwrite: bool = False) -> None:
    """Write a certificate as PEM."""
    _write(path, cert.public_bytes(serialization.Encoding.PEM), PUBLIC_MODE, overwrite)


def write_private_key(
    key: rsa.RSAPrivateKey,
    path: str,
    password: Optional[bytes] = None,
    overwrite: bool = False
) -> None:
    """
    Write a private key as PKCS#8 PEM, readable only by the owner.

    Args:
        key: RSA private key
        path: output file
        password: encrypt the key with this password when given
        overwrite: replace an existing file
    """
    if password:
        encryption = serialization.BestAvailableEncryption(password)
    else:
        encryption = serialization.NoEncryption()

    data = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=encryption
    )
    _write(path, data, PRIVATE_KEY_MODE, overwrite)


def write_csr(csr_pem: bytes, path: str) -> None:
    """Write an already PEM-encoded request, replacing any previous one."""
    _write(path, csr_pem, PUBLIC_MODE, overwrite=True)
