# edupresence/utils/tokens.py
import base64
import binascii
import jwt
from dataclasses import dataclass

from edupresence.errors import Expired, InvalidSignature, Malformed

JWT_ALGO = "HS256"
SESSION_WINDOW_SECONDS = 300  # 5 minute attendance window


@dataclass(frozen=True)
class ClassSession:
    class_id: str
    teacher_id: str
    issued_at: float
    expires_at: float


class SessionTokenCodec:
    """
    Mints and verifies attendance session tokens.

    A token is an HS256 JWT carrying class_id, teacher_id, issued_at and
    expires_at (epoch seconds). Nothing is stored server-side: the token's
    signed claims plus the verifier's clock decide validity.
    """

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret

    def mint(self, class_id: str, teacher_id: str, now: float) -> str:
        payload = {
            "class_id": class_id,
            "teacher_id": teacher_id,
            "issued_at": now,
            "expires_at": now + SESSION_WINDOW_SECONDS,
        }
        # pyjwt returns str in v2+
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGO)

    def verify(self, token: str, now: float) -> ClassSession:
        """
        Returns the decoded ClassSession, or raises InvalidSignature,
        Malformed or Expired.
        """
        if not _canonical_segments(token):
            raise Malformed("Invalid session token")

        try:
            # Expiry is checked below against the caller's clock, not pyjwt's.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGO],
                options={"verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidSignatureError as e:
            raise InvalidSignature("Invalid session token") from e
        except jwt.InvalidTokenError as e:
            raise Malformed("Invalid session token") from e

        session = _session_from_claims(payload)
        if now > session.expires_at:
            raise Expired("Session expired")
        return session


def _canonical_segments(token: str) -> bool:
    """
    True when every segment is base64url that re-encodes to itself.

    Lenient decoders ignore the spare low bits of a segment's last character,
    so several spellings of one signature would otherwise all verify.
    """
    for segment in token.split("."):
        try:
            raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
        except (binascii.Error, ValueError):
            return False
        if base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") != segment:
            return False
    return True


def _session_from_claims(payload) -> ClassSession:
    if not isinstance(payload, dict):
        raise Malformed("Invalid session token")

    class_id = payload.get("class_id")
    teacher_id = payload.get("teacher_id")
    issued_at = payload.get("issued_at")
    expires_at = payload.get("expires_at")

    if not isinstance(class_id, str) or not isinstance(teacher_id, str):
        raise Malformed("Invalid session token")
    for value in (issued_at, expires_at):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise Malformed("Invalid session token")

    return ClassSession(
        class_id=class_id,
        teacher_id=teacher_id,
        issued_at=issued_at,
        expires_at=expires_at,
    )
