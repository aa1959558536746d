"""Shared fixtures: a session CA, fast CA keys and a leaf certificate factory."""
import os

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from privateca import authority
from privateca.authority import create_private_ca
from privateca.common.options import HashAlgorithm, Options
from privateca.crypto.csr import CertInfo, new_csr, sign_csr

CA_SERIAL = 0x1F2E3D4C5B6A7988
SERVICE_NAMES = ["www.example.com", "api.example.com"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep PRIVATECA_* variables from the outer environment out of tests."""
    for name in list(os.environ):
        if name.startswith("PRIVATECA_"):
            monkeypatch.delenv(name)


@pytest.fixture(scope="session")
def ca_options():
    return Options(hostname="example.com", subject_alt_names=SERVICE_NAMES)


@pytest.fixture(scope="session")
def ca(ca_options):
    """A real CA with a 4096-bit key, built once per session."""
    return create_private_ca(ca_options, serial=CA_SERIAL)


@pytest.fixture(scope="session")
def leaf_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def fast_ca_keys(monkeypatch):
    """Replace CA key generation with 2048-bit keys for tests that do not check key size."""
    def generate():
        return rsa.generate_private_key(public_exponent=65537, key_size=2048)
    monkeypatch.setattr(authority, "generate_ca_key", generate)


@pytest.fixture
def make_leaf(ca, leaf_key):
    """Return a function that issues a short-lived leaf from the session CA."""
    def _make(cn, dns_names=(), issuer=None, lifetime=30):
        issuer = issuer or ca
        info = CertInfo(HashAlgorithm.SHA256)
        info.cn = cn
        if dns_names:
            info.add_extension(
                x509.SubjectAlternativeName([x509.DNSName(n) for n in dns_names]),
                critical=False
            )
        csr = new_csr(info, leaf_key).finalize()
        return sign_csr(csr, x509.random_serial_number(), lifetime,
                        issuer.cert, issuer.key, HashAlgorithm.SHA256)
    return _make
