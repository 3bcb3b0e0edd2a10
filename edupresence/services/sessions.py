import time
from dataclasses import dataclass
from typing import Callable, Optional

from edupresence.database.base import AttendanceStore
from edupresence.errors import Internal, NotOwner, StoreError, TokenError, Unauthorized
from edupresence.services.validators import teacher_owns_class
from edupresence.utils.logger import get_logger
from edupresence.utils.tokens import SESSION_WINDOW_SECONDS, ClassSession, SessionTokenCodec

log = get_logger("sessions")


@dataclass(frozen=True)
class StartedSession:
    token: str
    session: ClassSession
    class_name: Optional[str]


@dataclass(frozen=True)
class ValidatedSession:
    session: ClassSession
    class_name: Optional[str]


class SessionService:
    """Opens attendance windows and checks the tokens that carry them."""

    def __init__(self, store: AttendanceStore, codec: SessionTokenCodec,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.codec = codec
        self.clock = clock

    def start_session(self, class_id: str, teacher_id: str) -> StartedSession:
        if not teacher_owns_class(self.store, teacher_id, class_id):
            raise NotOwner()

        class_name = self._class_name(class_id, "Failed to create attendance session")
        now = self.clock()
        token = self.codec.mint(class_id, teacher_id, now)
        session = ClassSession(class_id, teacher_id, now, now + SESSION_WINDOW_SECONDS)

        log.info("Attendance session started for class: %s (%s) by teacher %s", class_name, class_id, teacher_id)
        return StartedSession(token=token, session=session, class_name=class_name)

    def validate_session(self, token: str) -> ValidatedSession:
        try:
            session = self.codec.verify(token, self.clock())
        except TokenError as e:
            log.info("Rejected session token: %s", type(e).__name__)
            raise

        class_name = self._class_name(session.class_id, "Failed to validate session")
        if class_name is None:
            log.warning("Session token for unknown class %s (teacher %s)", session.class_id, session.teacher_id)
            raise Unauthorized("Invalid session token")
        return ValidatedSession(session=session, class_name=class_name)

    def _class_name(self, class_id: str, failure_message: str) -> Optional[str]:
        try:
            row = self.store.get_class(class_id)
        except StoreError as e:
            log.error("Class lookup failed for %s: %s", class_id, e)
            raise Internal(failure_message) from e
        return row.get("name") if row else None
