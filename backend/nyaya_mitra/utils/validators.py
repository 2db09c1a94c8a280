"""
Custom validators
"""
import re

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72


def validate_password_strength(password: str) -> str:
    """
    At least 6 characters with one lowercase letter, one uppercase letter
    and one digit.
    """
    if len(password) < 6:
        raise ValueError("Password must be at least 6 characters long")
    if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError("Password must be at most 72 bytes long")
    if not any(char.islower() for char in password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(char.isupper() for char in password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(char.isdigit() for char in password):
        raise ValueError("Password must contain at least one digit")
    return password


def validate_mobile(mobile: str) -> bool:
    """
    Validate phone number loosely: optional +, digits, spaces and dashes,
    7 to 15 digits in total.
    Accepts: +919876543210, 98765 43210, 022-2345-6789
    """
    if not re.match(r"^\+?[\d\s-]+$", mobile):
        return False
    digits = re.sub(r"\D", "", mobile)
    return 7 <= len(digits) <= 15


def validate_username(username: str) -> bool:
    """Letters, digits, dot, underscore and dash only"""
    return bool(re.match(r"^[A-Za-z0-9._-]+$", username))
