"""Pydantic model for the options that drive CA creation."""
import os
import re
import socket
from enum import Enum, IntEnum
from typing import Tuple

from cryptography.hazmat.primitives import hashes
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

_LABEL = r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
_HOSTNAME_RE = re.compile(rf"^(?=.{{1,253}}$){_LABEL}(?:\.{_LABEL})*$")

ENV_PREFIX = "PRIVATECA_"


def default_hostname() -> str:
    """Fully qualified name of the local machine."""
    return socket.getfqdn()


class Verbosity(IntEnum):
    """Output levels; higher values include everything below them."""
    QUIET = -1
    NORMAL = 0
    VERBOSE = 1
    DEBUG = 2


class HashAlgorithm(str, Enum):
    """Digest used to sign both the CSR and the CA certificate."""
    SHA224 = "sha224"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"

    def to_hash(self) -> hashes.HashAlgorithm:
        """Return the matching cryptography hash instance."""
        return {
            HashAlgorithm.SHA224: hashes.SHA224,
            HashAlgorithm.SHA256: hashes.SHA256,
            HashAlgorithm.SHA384: hashes.SHA384,
            HashAlgorithm.SHA512: hashes.SHA512,
        }[self]()


class Options(BaseModel):
    """
    Read-only input for private CA creation.

    Instances are frozen: the CA workflow never mutates them.
    """
    model_config = ConfigDict(frozen=True)

    hostname: str = Field(default_factory=default_hostname, validate_default=True,
                          description="Primary DNS name of the service")
    subject_alt_names: Tuple[str, ...] = Field(default_factory=tuple,
                                               description="Additional DNS names, in order")
    country: str = Field("US", description="Two-letter country code or empty")
    state: str = Field("", description="State or province")
    locality: str = Field("", description="City or locality")
    org: str = Field("Unspecified", description="Organization name")
    org_unit: str = Field("", description="Organizational unit")
    lifetime: int = Field(398, description="Certificate validity in days")
    hash_fn: HashAlgorithm = Field(HashAlgorithm.SHA256,
                                   description="Signature digest algorithm")
    verbosity: Verbosity = Field(Verbosity.NORMAL, description="Diagnostic output level")

    @field_validator("hostname")
    @classmethod
    def check_hostname(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("hostname must not be empty")
        if not _HOSTNAME_RE.match(v):
            raise ValueError(f"invalid hostname: {v!r}")
        return v

    @field_validator("subject_alt_names")
    @classmethod
    def check_alt_names(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        names = []
        for name in v:
            name = name.strip()
            if not _HOSTNAME_RE.match(name):
                raise ValueError(f"invalid subject alternative name: {name!r}")
            names.append(name)
        return tuple(names)

    @field_validator("country")
    @classmethod
    def check_country(cls, v: str) -> str:
        if v and (len(v) != 2 or not v.isalpha()):
            raise ValueError("country must be a two-letter code")
        return v.upper()

    @field_validator("lifetime")
    @classmethod
    def check_lifetime(cls, v: int) -> int:
        if not 1 <= v <= 3650:
            raise ValueError("lifetime must be between 1 and 3650 days")
        return v

    @field_validator("verbosity", mode="before")
    @classmethod
    def parse_verbosity(cls, v):
        if isinstance(v, str):
            if v.lstrip("-").isdigit():
                return int(v)
            try:
                return Verbosity[v.upper()]
            except KeyError:
                raise ValueError(f"unknown verbosity: {v!r}")
        return v

    @field_validator("hash_fn", mode="before")
    @classmethod
    def parse_hash(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v

    @classmethod
    def from_env(cls, **overrides) -> "Options":
        """
        Build options from PRIVATECA_* environment variables.

        A .env file, if python-dotenv finds one, is loaded first. Keyword
        arguments that are not None take precedence over the environment.

        Args:
            **overrides: field values, typically parsed from the command line

        Returns:
            Validated Options instance

        Raises:
            pydantic.ValidationError: if any value is invalid
        """
        load_dotenv()

        env_fields = {
            "hostname": "HOSTNAME",
            "country": "COUNTRY",
            "state": "STATE",
            "locality": "LOCALITY",
            "org": "ORGANIZATION",
            "org_unit": "ORGANIZATIONAL_UNIT",
            "lifetime": "LIFETIME",
            "hash_fn": "HASH_ALG",
            "verbosity": "VERBOSITY",
        }
        values = {}
        for field, suffix in env_fields.items():
            raw = os.getenv(ENV_PREFIX + suffix)
            if raw is not None:
                values[field] = raw

        alt_names = os.getenv(ENV_PREFIX + "SUBJECT_ALT_NAMES")
        if alt_names:
            values["subject_alt_names"] = [n for n in alt_names.split(",") if n.strip()]

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
