"""Tests for certificate loading and path validation against the private CA."""
import datetime

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import NameOID

from conftest import SERVICE_NAMES
from privateca.authority import create_private_ca
from privateca.common.options import Options
from privateca.crypto.pki import (
    cert_to_pem_string,
    compute_cert_fingerprint,
    dns_name_permitted,
    get_cert_common_name,
    get_name_constraints,
    load_certificate,
    validate_certificate,
    validate_certificate_from_pem,
)
from privateca.storage.pem import write_certificate


@pytest.mark.parametrize("name,constraint,expected", [
    ("example.com", "example.com", True),
    ("EXAMPLE.com", "example.COM", True),
    ("www.example.com", "example.com", True),
    ("notexample.com", "example.com", False),
    ("example.com", ".example.com", False),
    ("a.example.com", ".example.com", True),
    ("example.org", "example.com", False),
    ("example.com.", "example.com", True),
])
def test_dns_name_permitted(name, constraint, expected):
    assert dns_name_permitted(name, [constraint]) is expected


def test_dns_name_unconstrained_and_excluded():
    assert dns_name_permitted("anything.test", None)
    assert not dns_name_permitted("bad.example.com", ["example.com"], ["bad.example.com"])


def test_get_name_constraints(ca):
    permitted, excluded = get_name_constraints(ca.cert)
    assert permitted[:3] == ["example.com", *SERVICE_NAMES]
    assert excluded is None


def test_ca_validates_itself(ca):
    is_valid, msg = validate_certificate(ca.cert, ca.cert)
    assert is_valid, msg


@pytest.mark.parametrize("name", ["example.com", *SERVICE_NAMES])
def test_leaf_for_permitted_name_is_valid(make_leaf, ca, name):
    leaf = make_leaf(name, [name])
    is_valid, msg = validate_certificate(leaf, ca.cert)
    assert is_valid, msg


def test_leaf_with_all_service_names_is_valid(make_leaf, ca):
    leaf = make_leaf("example.com", ["example.com", *SERVICE_NAMES])
    assert validate_certificate(leaf, ca.cert) == (True, "Certificate valid")


@pytest.mark.parametrize("name", ["example.org", "notexample.com", "evil.test"])
def test_leaf_outside_constraints_is_rejected(make_leaf, ca, name):
    leaf = make_leaf("example.com", ["example.com", name])
    is_valid, msg = validate_certificate(leaf, ca.cert)
    assert not is_valid
    assert msg == f"BAD_CERT: Name constraint violation for {name}"


@pytest.mark.parametrize("name", ["evil.www.example.com", "a.b.api.example.com", "Evil.WWW.Example.COM"])
def test_subdomain_of_permitted_name_is_valid(make_leaf, ca, name):
    leaf = make_leaf(name, [name])
    assert validate_certificate(leaf, ca.cert) == (True, "Certificate valid")


def test_name_constraints_are_subtrees_not_suffixes(make_leaf, ca):
    leaf = make_leaf("wwwexample.com", ["wwwexample.com"])
    assert validate_certificate(leaf, ca.cert) == (
        False, "BAD_CERT: Name constraint violation for wwwexample.com")


def test_leaf_without_san_checks_common_name(make_leaf, ca):
    assert validate_certificate(make_leaf("www.example.com"), ca.cert)[0]
    assert not validate_certificate(make_leaf("www.example.org"), ca.cert)[0]


def test_expected_cn(make_leaf, ca):
    leaf = make_leaf("www.example.com", ["www.example.com"])
    assert validate_certificate(leaf, ca.cert, expected_cn="www.example.com")[0]
    is_valid, msg = validate_certificate(leaf, ca.cert, expected_cn="wrong.hostname")
    assert not is_valid and "Common Name mismatch" in msg


def test_leaf_from_other_ca_is_rejected(make_leaf, ca, fast_ca_keys):
    other = create_private_ca(Options(hostname="example.com"))
    leaf = make_leaf("example.com", ["example.com"], issuer=other)
    is_valid, msg = validate_certificate(leaf, ca.cert)
    assert not is_valid
    assert msg.startswith("BAD_CERT")


def test_leaf_cannot_act_as_issuer(make_leaf, ca):
    leaf = make_leaf("example.com", ["example.com"])
    is_valid, msg = validate_certificate(leaf, leaf)
    assert not is_valid


def test_expired_leaf_is_rejected(ca, leaf_key):
    now = datetime.datetime.now(datetime.timezone.utc)
    leaf = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "example.com")]))
        .issuer_name(ca.cert.subject)
        .public_key(leaf_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=10))
        .not_valid_after(now - datetime.timedelta(days=1))
        .sign(ca.key, hashes.SHA256())
    )
    assert validate_certificate(leaf, ca.cert) == (False, "BAD_CERT: Certificate expired")


def test_pem_helpers(make_leaf, ca, tmp_path):
    ca_path = str(tmp_path / "ca.crt")
    write_certificate(ca.cert, ca_path)

    loaded = load_certificate(ca_path)
    assert loaded == ca.cert
    assert compute_cert_fingerprint(loaded) == ca.cert.fingerprint(hashes.SHA256()).hex()
    assert get_cert_common_name(loaded).startswith("ca-")

    leaf = make_leaf("api.example.com", ["api.example.com"])
    is_valid, msg = validate_certificate_from_pem(cert_to_pem_string(leaf), ca_path)
    assert is_valid, msg


def test_from_pem_reports_load_failure(tmp_path):
    is_valid, msg = validate_certificate_from_pem("not a cert", str(tmp_path / "missing.crt"))
    assert not is_valid
    assert msg.startswith("BAD_CERT: Failed to load certificates")
