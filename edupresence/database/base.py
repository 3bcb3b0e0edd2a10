from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, List, Optional

AttendanceRow = Dict[str, Any]


class AttendanceStore(ABC):
    """
    Data store gateway used by the validators and services.

    Implementations raise ``StoreError`` for any backend failure and
    ``DuplicateKey`` when an attendance insert hits the
    (class_id, student_id, date) uniqueness constraint. They must be safe to
    share between concurrent requests.
    """

    @abstractmethod
    def class_owned_by(self, class_id: str, teacher_id: str) -> bool:
        ...

    @abstractmethod
    def is_enrolled(self, class_id: str, student_id: str) -> bool:
        ...

    @abstractmethod
    def get_class(self, class_id: str) -> Optional[Dict[str, Any]]:
        """Returns ``{"id", "name", "teacher_id"}`` or None."""

    @abstractmethod
    def find_attendance(self, class_id: str, student_id: str, day: date) -> Optional[AttendanceRow]:
        ...

    @abstractmethod
    def insert_attendance(self, row: AttendanceRow) -> AttendanceRow:
        """Inserts one record and returns it as stored (including its id)."""

    @abstractmethod
    def list_class_attendance(self, class_id: str, day: Optional[date] = None) -> List[AttendanceRow]:
        """Records for a class, newest date first, each with a ``student`` object."""

    @abstractmethod
    def list_student_attendance(self, student_id: str) -> List[AttendanceRow]:
        """Records for a student, newest date first, each with a ``class`` object."""
