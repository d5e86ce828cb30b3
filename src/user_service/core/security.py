"""Password hashing helpers (argon2 via pwdlib)."""
from pwdlib import PasswordHash

password_hash = PasswordHash.recommended()


def hash_password(password: str) -> str:
    """Hash ``password`` exactly as given, using the recommended argon2 parameters."""
    return password_hash.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    """Check ``password`` against a stored hash."""
    return password_hash.verify(password, hashed_password)
