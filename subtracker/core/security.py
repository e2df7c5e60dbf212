import bcrypt

# bcrypt only looks at the first 72 bytes of the password
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Hash and verify passwords with a per-password bcrypt salt."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Return the salted hash for storage."""
        password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a candidate password against a stored hash."""
        password_bytes = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(password_bytes, password_hash.encode("utf-8"))
        except ValueError:
            # malformed stored hash
            return False


password_hasher = PasswordHasher()
