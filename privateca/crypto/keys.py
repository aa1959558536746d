"""Serial numbers and RSA key generation."""
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from ..common.errors import CryptoPrimitiveError

# Private CA keys are always RSA 4096 with exponent F4
CA_KEY_BITS = 4096
CA_PUBLIC_EXPONENT = 65537


def generate_serial() -> int:
    """
    Generate a random positive certificate serial number.

    Returns:
        Integer of at most 159 bits, drawn from os.urandom

    Raises:
        CryptoPrimitiveError: if the entropy source fails
    """
    try:
        return x509.random_serial_number()
    except OSError as e:
        raise CryptoPrimitiveError(f"Failed to generate serial number: {e}") from e


def generate_rsa_key(bits: int, public_exponent: int) -> rsa.RSAPrivateKey:
    """
    Generate an RSA keypair.

    Args:
        bits: modulus size in bits
        public_exponent: public exponent, normally 65537

    Returns:
        RSAPrivateKey object

    Raises:
        CryptoPrimitiveError: if the parameters are rejected or generation fails
    """
    try:
        return rsa.generate_private_key(
            public_exponent=public_exponent,
            key_size=bits
        )
    except (ValueError, OSError) as e:
        raise CryptoPrimitiveError(f"Failed to generate RSA key: {e}") from e


def generate_ca_key() -> rsa.RSAPrivateKey:
    """Generate the fixed-size keypair used by a private CA."""
    return generate_rsa_key(CA_KEY_BITS, CA_PUBLIC_EXPONENT)
