"""Fail-closed authorization predicates over the data store gateway."""
from edupresence.database.base import AttendanceStore
from edupresence.utils.logger import get_logger

log = get_logger("validators")


def teacher_owns_class(store: AttendanceStore, teacher_id: str, class_id: str) -> bool:
    try:
        return bool(store.class_owned_by(class_id, teacher_id))
    except Exception as e:  # any lookup failure denies
        log.error("Class validation error (teacher=%s, class=%s): %s", teacher_id, class_id, e)
        return False


def student_enrolled(store: AttendanceStore, student_id: str, class_id: str) -> bool:
    try:
        return bool(store.is_enrolled(class_id, student_id))
    except Exception as e:  # any lookup failure denies
        log.error("Enrollment validation error (student=%s, class=%s): %s", student_id, class_id, e)
        return False
