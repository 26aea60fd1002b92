"""
Unit Tests for the arithmetic captcha
Tests for: challenge generation, answer hashing, expiry
"""
import random
import re
import time

import pytest

from app.utils import captcha
from app.utils.captcha import generate_captcha, hash_answer, validate_captcha


def _solve(question: str) -> int:
    a, op, b = re.match(r"What is (\d+) (\S) (\d+)\?", question).groups()
    a, b = int(a), int(b)
    return {"+": a + b, "-": a - b, "×": a * b}[op]


class TestGenerateCaptcha:
    """Test challenge generation"""

    def test_challenge_has_question_hash_and_expiry(self):
        challenge = generate_captcha()

        assert set(challenge) == {"question", "hash", "expiresAt"}
        assert challenge["question"].startswith("What is ")
        assert len(challenge["hash"]) == 64

    def test_expiry_uses_ttl(self):
        before = int(time.time() * 1000)
        challenge = generate_captcha(ttl_seconds=300)

        assert before + 300_000 <= challenge["expiresAt"] <= int(time.time() * 1000) + 300_000

    @pytest.mark.parametrize("operator", ["+", "-", "×"])
    def test_hash_matches_solved_answer(self, operator):
        challenge = generate_captcha(operators=[operator], rng=random.Random(42))
        answer = _solve(challenge["question"])

        assert challenge["hash"] == hash_answer(str(answer), challenge["expiresAt"])

    def test_subtraction_never_negative(self):
        rng = random.Random(7)
        for _ in range(50):
            challenge = generate_captcha(operators=["-"], rng=rng)
            assert _solve(challenge["question"]) >= 0

    def test_every_operand_pair_is_reachable(self):
        """Operands cover 1..10 on both sides"""
        rng = random.Random(1)
        seen = set()
        for _ in range(3000):
            a, b = re.match(r"What is (\d+) \+ (\d+)\?", generate_captcha(operators=["+"], rng=rng)["question"]).groups()
            seen.add((int(a), int(b)))

        assert seen == {(a, b) for a in range(1, 11) for b in range(1, 11)}

    def test_unknown_operator_rejected(self):
        with pytest.raises(ValueError):
            generate_captcha(operators=["/"])


class TestValidateCaptcha:
    """Test answer validation"""

    def test_correct_answer_accepted(self):
        expires_at = int(time.time() * 1000) + 60_000
        assert validate_captcha("12", hash_answer("12", expires_at), expires_at) is True

    def test_whitespace_around_answer_ignored(self):
        expires_at = int(time.time() * 1000) + 60_000
        assert validate_captcha(" 12 ", hash_answer("12", expires_at), expires_at) is True

    def test_expiry_as_string_accepted(self):
        expires_at = int(time.time() * 1000) + 60_000
        assert validate_captcha("12", hash_answer("12", expires_at), str(expires_at)) is True

    def test_wrong_answer_rejected(self):
        expires_at = int(time.time() * 1000) + 60_000
        assert validate_captcha("13", hash_answer("12", expires_at), expires_at) is False

    def test_expired_challenge_rejected(self):
        expires_at = int(time.time() * 1000) - 1
        assert validate_captcha("12", hash_answer("12", expires_at), expires_at) is False

    def test_tampered_expiry_rejected(self):
        """Extending expiresAt changes the hash input"""
        expires_at = int(time.time() * 1000) + 60_000
        digest = hash_answer("12", expires_at)
        assert validate_captcha("12", digest, expires_at + 60_000) is False

    def test_other_salt_rejected(self):
        expires_at = int(time.time() * 1000) + 60_000
        digest = hash_answer("12", expires_at, secret="another-salt")
        assert validate_captcha("12", digest, expires_at) is False

    @pytest.mark.parametrize("answer,digest,expires_at", [
        (None, "abc", 1),
        ("1", "", 1),
        ("1", "abc", None),
        ("1", "abc", ""),
        ("1", "abc", "not-a-number"),
    ])
    def test_missing_fields_rejected(self, answer, digest, expires_at):
        assert validate_captcha(answer, digest, expires_at) is False

    def test_uses_configured_salt(self, monkeypatch):
        monkeypatch.setattr(captcha.settings, "CAPTCHA_SECRET", "rotated")
        expires_at = int(time.time() * 1000) + 60_000

        assert hash_answer("5", expires_at) == hash_answer("5", expires_at, secret="rotated")


class _FixedRng:
    """Draws the given operands and operator instead of random ones"""

    def __init__(self, a, b, operator):
        self._operands = [a, b]
        self._operator = operator

    def randint(self, low, high):
        return self._operands.pop(0)

    def choice(self, options):
        return self._operator


OPERATIONS = {"+": lambda a, b: a + b, "-": lambda a, b: abs(a - b), "×": lambda a, b: a * b}


@pytest.mark.parametrize("operator", sorted(OPERATIONS))
@pytest.mark.parametrize("a", range(1, 11))
@pytest.mark.parametrize("b", range(1, 11))
def test_only_exact_answer_passes(a, b, operator):
    expected = OPERATIONS[operator](a, b)
    challenge = generate_captcha(operators=[operator], rng=_FixedRng(a, b, operator))
    expires_at = challenge["expiresAt"]

    assert challenge["hash"] == hash_answer(str(expected), expires_at)
    assert validate_captcha(str(expected), challenge["hash"], expires_at) is True

    for wrong in (str(expected + 1), str(expected - 1), "", f"0{expected}", "seven", f"{expected}a"):
        assert validate_captcha(wrong, challenge["hash"], expires_at) is False, wrong
