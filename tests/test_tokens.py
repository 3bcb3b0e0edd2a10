import string

import jwt
import pytest

from edupresence.errors import Expired, InvalidSignature, Malformed, TokenError
from edupresence.utils.tokens import SESSION_WINDOW_SECONDS, ClassSession, SessionTokenCodec

from conftest import TEST_SECRET


@pytest.mark.parametrize(
    "class_id,teacher_id,now",
    [
        ("C1", "T1", 1000),
        ("3f0c9a2e-physics", "teacher-é", 1_700_000_000.123456),
        ("", "T1", 0),
    ],
)
def test_verify_returns_the_minted_session(codec, class_id, teacher_id, now):
    token = codec.mint(class_id, teacher_id, now)

    session = codec.verify(token, now)

    assert session == ClassSession(
        class_id=class_id,
        teacher_id=teacher_id,
        issued_at=now,
        expires_at=now + SESSION_WINDOW_SECONDS,
    )


def test_token_is_valid_for_five_minutes(codec):
    token = codec.mint("C1", "T1", 1000)

    assert codec.verify(token, 1000 + 299).class_id == "C1"
    assert codec.verify(token, 1000 + 300).class_id == "C1"
    with pytest.raises(Expired):
        codec.verify(token, 1000 + 301)


def test_token_signed_with_another_secret_is_rejected(codec):
    token = SessionTokenCodec("another-secret-key-for-session-tokens-02").mint("C1", "T1", 1000)

    with pytest.raises(InvalidSignature):
        codec.verify(token, 1000)


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b", "a.b.c"])
def test_garbage_is_malformed(codec, token):
    with pytest.raises(Malformed):
        codec.verify(token, 1000)


def test_missing_claims_are_malformed(codec):
    token = jwt.encode({"class_id": "C1", "issued_at": 1000}, TEST_SECRET, algorithm="HS256")

    with pytest.raises(Malformed):
        codec.verify(token, 1000)


def test_non_numeric_expiry_is_malformed(codec):
    token = jwt.encode(
        {"class_id": "C1", "teacher_id": "T1", "issued_at": 1000, "expires_at": "later"},
        TEST_SECRET,
        algorithm="HS256",
    )

    with pytest.raises(Malformed):
        codec.verify(token, 1000)


BASE64URL = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-_"


def test_changing_any_character_is_detected(codec):
    token = codec.mint("C1", "T1", 1000)

    checked = 0
    for i, ch in enumerate(token):
        if ch == ".":
            continue
        for replacement in BASE64URL:
            if replacement == ch:
                continue
            tampered = token[:i] + replacement + token[i + 1:]

            with pytest.raises(TokenError) as excinfo:
                codec.verify(tampered, 1000)
            assert isinstance(excinfo.value, (InvalidSignature, Malformed)), (i, ch, replacement)
            checked += 1

    assert checked > 50 * 63


def test_signature_with_spare_bits_set_is_malformed(codec):
    token = codec.mint("C1", "T1", 1000)
    head, last = token[:-1], token[-1]
    # An HS256 signature is 32 bytes: its last character holds 4 bits plus 2 unused ones.
    index = BASE64URL.index(last)
    variants = [BASE64URL[index | spare] for spare in (1, 2, 3)]

    for variant in variants:
        with pytest.raises(Malformed):
            codec.verify(head + variant, 1000)


def test_codec_requires_a_secret():
    with pytest.raises(ValueError):
        SessionTokenCodec("")
