"""
Password Hashing - Salted Slow Hashes

Raw passwords are never stored or compared. Hashes carry their own salt and
parameters (PHC string format), so verification needs only the stored value.
"""
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a candidate password; malformed stored hashes never verify."""
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        return False
