"""
Stateless arithmetic CAPTCHA.

The client receives the question, a salted SHA-256 of the answer and the
expiry timestamp. It sends the three back with its answer; nothing is stored
server side.
"""

import hashlib
import random
import time
from typing import Dict, Optional, Sequence, Union

from app.core.config import settings

MIN_OPERAND = 1
MAX_OPERAND = 10


def _now_ms() -> int:
    return int(time.time() * 1000)


def hash_answer(answer: str, expires_at: int, secret: Optional[str] = None) -> str:
    """sha256(answer + salt + expires_at) as hex"""
    salt = settings.CAPTCHA_SECRET if secret is None else secret
    return hashlib.sha256(f"{answer}{salt}{expires_at}".encode("utf-8")).hexdigest()


def _solve(a: int, b: int, operator: str):
    if operator == "+":
        return a + b, f"What is {a} + {b}?"
    if operator == "-":
        high, low = max(a, b), min(a, b)
        return high - low, f"What is {high} - {low}?"
    if operator == "×":
        return a * b, f"What is {a} × {b}?"
    raise ValueError(f"Unsupported captcha operator: {operator}")


def generate_captcha(
    secret: Optional[str] = None,
    operators: Optional[Sequence[str]] = None,
    ttl_seconds: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, Union[str, int]]:
    """
    Build a new challenge.

    Returns:
        {"question": str, "hash": str, "expiresAt": int (ms since epoch)}
    """
    rng = rng or random.SystemRandom()
    operators = list(operators or settings.CAPTCHA_OPERATORS or ["+"])
    ttl = settings.CAPTCHA_TTL_SECONDS if ttl_seconds is None else ttl_seconds

    a = rng.randint(MIN_OPERAND, MAX_OPERAND)
    b = rng.randint(MIN_OPERAND, MAX_OPERAND)
    answer, question = _solve(a, b, rng.choice(operators))

    expires_at = _now_ms() + ttl * 1000
    return {
        "question": question,
        "hash": hash_answer(str(answer), expires_at, secret),
        "expiresAt": expires_at,
    }


def validate_captcha(
    answer: Optional[str],
    captcha_hash: Optional[str],
    expires_at: Optional[Union[int, str]],
    secret: Optional[str] = None,
) -> bool:
    """True when the answer matches the hash and the challenge has not expired"""
    if answer is None or not captcha_hash or expires_at in (None, ""):
        return False

    try:
        expires_at = int(expires_at)
    except (TypeError, ValueError):
        return False

    if _now_ms() > expires_at:
        return False

    return hash_answer(str(answer).strip(), expires_at, secret) == captcha_hash
