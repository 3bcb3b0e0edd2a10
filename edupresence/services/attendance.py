import time
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from edupresence.database.base import AttendanceStore
from edupresence.errors import (
    AlreadyMarked, BadRequest, DuplicateKey, Internal, NotEnrolled, StoreError,
)
from edupresence.services.validators import student_enrolled
from edupresence.utils.logger import get_logger

log = get_logger("attendance")


def calendar_day(epoch_seconds: float) -> date:
    """UTC calendar day of a server timestamp."""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).date()


def parse_day(value: Optional[str]) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise BadRequest("Invalid date, expected YYYY-MM-DD")


class AttendanceService:
    """
    Records one attendance mark per (class, student, calendar day).

    The lookup before the insert only gives a friendly early answer. Two marks
    racing for the same key can both pass it; the store's uniqueness constraint
    then rejects the second insert with DuplicateKey, which is reported as
    AlreadyMarked exactly like the early answer.
    """

    def __init__(self, store: AttendanceStore, clock: Callable[[], float] = time.time):
        self.store = store
        self.clock = clock

    def mark(
        self,
        class_id: str,
        student_id: str,
        signal_strength: Optional[float] = None,
        scan_payload: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not student_enrolled(self.store, student_id, class_id):
            raise NotEnrolled()

        now = self.clock()
        today = calendar_day(now)

        try:
            existing = self.store.find_attendance(class_id, student_id, today)
        except StoreError as e:
            log.error("Attendance lookup failed (student=%s, class=%s): %s", student_id, class_id, e)
            raise Internal("Failed to mark attendance") from e

        if existing:
            log.info("Attendance already marked for student %s in class %s on %s", student_id, class_id, today)
            raise AlreadyMarked()

        row = {
            "class_id": class_id,
            "student_id": student_id,
            "date": today,
            "marked": True,
            "signal_strength": signal_strength,
            "scan_payload": scan_payload,
            "created_at": datetime.fromtimestamp(now, tz=timezone.utc),
        }
        try:
            record = self.store.insert_attendance(row)
        except DuplicateKey:
            log.info("Concurrent duplicate mark rejected for student %s in class %s on %s",
                     student_id, class_id, today)
            raise AlreadyMarked()
        except StoreError as e:
            log.error("Attendance marking error (student=%s, class=%s): %s", student_id, class_id, e)
            raise Internal("Failed to mark attendance") from e

        log.info("Attendance marked for student %s in class %s", student_id, class_id)
        return record

    def class_attendance(self, class_id: str, day: Optional[str] = None) -> List[Dict[str, Any]]:
        if not class_id:
            raise BadRequest("Missing class_id")
        wanted = parse_day(day)
        try:
            return self.store.list_class_attendance(class_id, wanted)
        except StoreError as e:
            log.error("Attendance fetch error (class=%s): %s", class_id, e)
            raise Internal("Failed to fetch attendance records") from e

    def student_attendance(self, student_id: str) -> List[Dict[str, Any]]:
        if not student_id:
            raise BadRequest("Missing student_id")
        try:
            return self.store.list_student_attendance(student_id)
        except StoreError as e:
            log.error("Student attendance fetch error (student=%s): %s", student_id, e)
            raise Internal("Failed to fetch student attendance records") from e
