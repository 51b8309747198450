"""Password hashing and verification for account credentials."""

import bcrypt

# Bcrypt cost (rounds); overridden from settings.BCRYPT_ROUNDS at wiring time.
BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72

# Length and character rules for registration / login input validation.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 50
USERNAME_PATTERN = r"^[a-zA-Z0-9_.-]+$"
EMAIL_MAX_LEN = 320
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 255
PASSWORD_SPECIAL_CHARS = "@$!%*?&"
LOGIN_IDENTIFIER_MIN_LEN = 3
LOGIN_IDENTIFIER_MAX_LEN = 320
LOGIN_PASSWORD_MIN_LEN = 6
NAME_MAX_LEN = 100
NAME_PATTERN = r"^[a-zA-ZÀ-ÿ\s'-]+$"
PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash (constant-time)."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def is_complex_password(password: str) -> bool:
    """True when the password mixes lower, upper, digit and a special character."""
    if not password or not password.strip():
        return False
    has_lower = any(c.islower() for c in password)
    has_upper = any(c.isupper() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_special = any(c in PASSWORD_SPECIAL_CHARS for c in password)
    return has_lower and has_upper and has_digit and has_special
