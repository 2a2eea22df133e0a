"""Password hashing with bcrypt.

Each hash carries its own random salt and cost factor, so verification
needs nothing but the stored string. bcrypt only looks at the first 72
bytes of its input; request models reject longer passwords before they
reach this module.
"""

import bcrypt

# bcrypt input limit in bytes
MAX_PASSWORD_BYTES = 72

_DEFAULT_ROUNDS = 12

# Pre-computed bcrypt hash for timing-safe comparison on account-not-found.
# Security: prevents account enumeration via response time differences.
# Pre-generated to avoid ~300ms bcrypt computation on every app startup.
DUMMY_HASH = "$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


def hash_password(plaintext: str, rounds: int = _DEFAULT_ROUNDS) -> str:
    """Hash a password with a fresh salt.

    Args:
        plaintext: Password as submitted by the user.
        rounds: bcrypt cost factor (log2 of the iteration count).

    Returns:
        bcrypt hash string (``$2b$...``), safe to store.
    """
    return bcrypt.hashpw(plaintext.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(plaintext: str, digest: str) -> bool:
    """Check a password against a stored bcrypt hash.

    Never raises for bad input: a digest that is not a bcrypt hash simply
    does not match.

    Args:
        plaintext: Password as submitted by the user.
        digest: Stored bcrypt hash.

    Returns:
        True if the password matches, False otherwise.
    """
    try:
        return bcrypt.checkpw(plaintext.encode(), digest.encode())
    except ValueError:
        # "Invalid salt" and friends
        return False


def fits_bcrypt(plaintext: str) -> bool:
    """Whether bcrypt would see the whole password (<= 72 UTF-8 bytes)."""
    return len(plaintext.encode()) <= MAX_PASSWORD_BYTES
