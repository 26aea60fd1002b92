"""Password strength rules shared by user creation and password reset"""

import re
import secrets
import string
from typing import List, Tuple

MIN_LENGTH = 8
MAX_LENGTH = 128
SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

COMMON_PASSWORDS = {
    "password",
    "123456",
    "password123",
    "admin",
    "qwerty",
    "12345678",
    "123456789",
    "password1",
    "abc123",
}


def validate_password(password: str) -> Tuple[bool, List[str]]:
    """
    Check a candidate password.

    Returns:
        (is_valid, errors) with one message per failed rule
    """
    errors: List[str] = []
    password = password or ""

    if len(password) < MIN_LENGTH:
        errors.append(f"Password must be at least {MIN_LENGTH} characters long")
    if len(password) > MAX_LENGTH:
        errors.append(f"Password must not exceed {MAX_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not any(ch in SPECIAL_CHARACTERS for ch in password):
        errors.append("Password must contain at least one special character")
    if password.lower() in COMMON_PASSWORDS:
        errors.append("Password is too common. Please choose a stronger password")

    return len(errors) == 0, errors


def generate_strong_password(length: int = 12) -> str:
    """Random password with at least one character from each class"""
    length = max(length, 4)
    rng = secrets.SystemRandom()
    pools = [string.ascii_uppercase, string.ascii_lowercase, string.digits, SPECIAL_CHARACTERS]

    chars = [rng.choice(pool) for pool in pools]
    everything = "".join(pools)
    chars.extend(rng.choice(everything) for _ in range(length - len(chars)))
    rng.shuffle(chars)
    return "".join(chars)
