"""Random one-time token values and their storage digests.

Plaintext values only ever leave the process inside an emailed link. The
database stores the SHA-256 digest, so a leaked table cannot be replayed.
"""

import hashlib
import secrets

# Below this the token is guessable
MIN_TOKEN_BYTES = 16

VERIFICATION_TOKEN_BYTES = 32
RESET_TOKEN_BYTES = 20


def random_token(byte_length: int) -> str:
    """Generate a random token rendered as lowercase hex.

    Args:
        byte_length: Number of random bytes (hex output is twice as long).

    Returns:
        Hex string from a CSPRNG.

    Raises:
        ValueError: If byte_length is below MIN_TOKEN_BYTES.
    """
    if byte_length < MIN_TOKEN_BYTES:
        msg = f"Token length must be at least {MIN_TOKEN_BYTES} bytes"
        raise ValueError(msg)
    return secrets.token_bytes(byte_length).hex()


def digest(value: str) -> str:
    """SHA-256 hex digest (64 chars) of a token value."""
    return hashlib.sha256(value.encode()).hexdigest()
