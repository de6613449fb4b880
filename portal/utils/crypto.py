"""
Employee password hashing.

Stored hashes are bcrypt. Accounts imported from the old directory still
carry Werkzeug (scrypt / pbkdf2) hashes; they verify here and are upgraded
to bcrypt on the next successful login.
"""

import bcrypt
from werkzeug.security import check_password_hash

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(plain_password: str, rounds: int = 12) -> str:
    digest = bcrypt.hashpw(plain_password.encode(), bcrypt.gensalt(rounds=rounds))
    return digest.decode()


def is_legacy_hash(password_hash: str | None) -> bool:
    return bool(password_hash) and not password_hash.startswith(BCRYPT_PREFIXES)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """True when ``plain_password`` matches; an empty hash never matches."""
    if not password_hash:
        return False
    if is_legacy_hash(password_hash):
        return check_password_hash(password_hash, plain_password)
    return bcrypt.checkpw(plain_password.encode(), password_hash.encode())
