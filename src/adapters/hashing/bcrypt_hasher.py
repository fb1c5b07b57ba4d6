"""
bcrypt password hasher adapter - Implements PasswordHasher protocol.

Cost factor defaults to 10. bcrypt.checkpw compares in constant time.
"""

import bcrypt

DEFAULT_COST = 10

# bcrypt only reads the first 72 bytes; newer releases reject longer input.
_MAX_SECRET_BYTES = 72


def _secret(plaintext: str) -> bytes:
    return plaintext.encode()[:_MAX_SECRET_BYTES]


class BcryptPasswordHasher:
    """
    Implements PasswordHasher protocol via bcrypt.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, cost: int = DEFAULT_COST) -> None:
        """
        Initialize hasher with a work factor.

        Args:
            cost: bcrypt log2 rounds (4-31)
        """
        self._cost = cost

    def hash(self, plaintext: str) -> str:
        return bcrypt.hashpw(_secret(plaintext), bcrypt.gensalt(rounds=self._cost)).decode()

    def verify(self, digest: str, plaintext: str) -> bool:
        try:
            return bcrypt.checkpw(_secret(plaintext), digest.encode())
        except ValueError:
            # Malformed digest (not produced by hash()).
            return False
