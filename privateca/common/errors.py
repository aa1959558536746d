"""Exception types raised while building the private CA."""


class PrivateCAError(RuntimeError):
    """Base class for every failure that aborts CA creation."""


class CryptoPrimitiveError(PrivateCAError):
    """Key generation, serial generation or hashing failed."""


class IdentityError(PrivateCAError):
    """The CA subject could not be encoded (e.g. Common Name too long)."""


class ExtensionConstructionError(PrivateCAError):
    """An X.509v3 extension value was rejected by the cryptography library."""


class RequestFinalizationError(PrivateCAError):
    """The certificate signing request could not be built or finalized."""


class SigningError(PrivateCAError):
    """The final certificate could not be signed."""


class OutputError(PrivateCAError):
    """PEM output could not be written."""
