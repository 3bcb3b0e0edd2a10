from datetime import date, datetime
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from edupresence.database.base import AttendanceRow, AttendanceStore
from edupresence.errors import DuplicateKey, StoreError

# PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"

CLASS_ATTENDANCE_COLUMNS = (
    "id, class_id, student_id, date, marked, signal_strength, created_at, "
    "student:users(id, name, enrollment_no)"
)
STUDENT_ATTENDANCE_COLUMNS = (
    "id, class_id, student_id, date, marked, signal_strength, created_at, "
    "class:classes(id, name)"
)


def _json_value(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class SupabaseStore(AttendanceStore):
    """
    Gateway over the Supabase tables ``classes``, ``class_students``,
    ``attendance`` and ``users``.

    The ``attendance`` table must carry a unique index on
    (class_id, student_id, date); a violation surfaces as ``DuplicateKey``.
    """

    def __init__(self, supabase_url: str = None, supabase_key: str = None, client: Client = None):
        if client is None:
            if not supabase_url or not supabase_key:
                raise RuntimeError("Supabase credentials not found in environment variables.")
            client = create_client(supabase_url, supabase_key)
        self.client = client

    def class_owned_by(self, class_id: str, teacher_id: str) -> bool:
        rows = self._execute(
            "class ownership lookup",
            self.client.table("classes").select("id")
                .eq("id", class_id).eq("teacher_id", teacher_id).limit(1),
        )
        return bool(rows)

    def is_enrolled(self, class_id: str, student_id: str) -> bool:
        rows = self._execute(
            "enrollment lookup",
            self.client.table("class_students").select("class_id")
                .eq("class_id", class_id).eq("student_id", student_id).limit(1),
        )
        return bool(rows)

    def get_class(self, class_id: str) -> Optional[Dict[str, Any]]:
        rows = self._execute(
            "class lookup",
            self.client.table("classes").select("id, name, teacher_id").eq("id", class_id).limit(1),
        )
        return rows[0] if rows else None

    def find_attendance(self, class_id: str, student_id: str, day: date) -> Optional[AttendanceRow]:
        rows = self._execute(
            "attendance lookup",
            self.client.table("attendance").select("*")
                .eq("class_id", class_id).eq("student_id", student_id)
                .eq("date", day.isoformat()).limit(1),
        )
        return rows[0] if rows else None

    def insert_attendance(self, row: AttendanceRow) -> AttendanceRow:
        payload = {key: _json_value(value) for key, value in row.items() if value is not None}
        try:
            response = self.client.table("attendance").insert(payload).execute()
        except Exception as e:
            if str(getattr(e, "code", "")) == UNIQUE_VIOLATION:
                raise DuplicateKey(
                    f"attendance already exists for {row['class_id']}/{row['student_id']}/{row['date']}"
                ) from e
            raise StoreError(f"attendance insert failed: {e}") from e

        data = response.data if response is not None else None
        if not data:
            raise StoreError("attendance insert returned no row")
        return data[0]

    def list_class_attendance(self, class_id: str, day: Optional[date] = None) -> List[AttendanceRow]:
        query = self.client.table("attendance") \
            .select(CLASS_ATTENDANCE_COLUMNS) \
            .eq("class_id", class_id) \
            .order("date", desc=True)
        if day is not None:
            query = query.eq("date", day.isoformat())
        return self._execute("class attendance listing", query)

    def list_student_attendance(self, student_id: str) -> List[AttendanceRow]:
        query = self.client.table("attendance") \
            .select(STUDENT_ATTENDANCE_COLUMNS) \
            .eq("student_id", student_id) \
            .order("date", desc=True)
        return self._execute("student attendance listing", query)

    def _execute(self, what: str, query) -> List[Dict[str, Any]]:
        try:
            response = query.execute()
        except Exception as e:
            raise StoreError(f"{what} failed: {e}") from e
        data = response.data if response is not None else None
        if data is None:
            return []
        if not isinstance(data, list):
            raise StoreError(f"{what} returned unexpected data: {type(data).__name__}")
        return data
