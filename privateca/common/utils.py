"""Helper signatures: now_utc, low_word, sha256_hex, log_verbose, log_debug."""
import datetime
import hashlib
import sys
from typing import Union

from .options import Verbosity

WORD_MASK = 0xFFFFFFFFFFFFFFFF


def now_utc() -> datetime.datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def low_word(n: int) -> int:
    """Return the low 64-bit machine word of a non-negative integer."""
    return n & WORD_MASK


def sha256_hex(data: Union[bytes, str]) -> str:
    """Compute SHA-256 hash and return as hex string."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).hexdigest()


def log_verbose(verbosity: Verbosity, message: str) -> None:
    """Print a progress message on stdout at verbose level and above."""
    if verbosity >= Verbosity.VERBOSE:
        print(message, file=sys.stdout)


def log_debug(verbosity: Verbosity, message: str) -> None:
    """Print a DEBUG-prefixed message on stderr at debug level."""
    if verbosity >= Verbosity.DEBUG:
        print(f"DEBUG: {message}", file=sys.stderr)
