from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from edupresence.database.base import AttendanceRow, AttendanceStore
from edupresence.errors import DuplicateKey, StoreError
from edupresence.models import Attendance, Base, ClassStudent, SchoolClass


def _record_dict(record: Attendance) -> AttendanceRow:
    return {
        "id": record.id,
        "class_id": record.class_id,
        "student_id": record.student_id,
        "date": record.date.isoformat(),
        "marked": record.marked,
        "signal_strength": record.signal_strength,
        "scan_payload": record.scan_payload,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


def _listing_dict(record: Attendance) -> AttendanceRow:
    return {
        "id": record.id,
        "class_id": record.class_id,
        "student_id": record.student_id,
        "date": record.date.isoformat(),
        "marked": record.marked,
        "signal_strength": record.signal_strength,
        "created_at": record.created_at.isoformat() if record.created_at else None,
    }


class SqlStore(AttendanceStore):
    """SQLAlchemy gateway. The unique constraint on ``attendance`` guards duplicate marks."""

    def __init__(self, database_url: str, create_tables: bool = True):
        connect_args = {}
        engine_kwargs = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
                # One shared connection, otherwise every checkout sees an empty database
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(database_url, connect_args=connect_args, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        if create_tables:
            Base.metadata.create_all(bind=self.engine)

    def class_owned_by(self, class_id: str, teacher_id: str) -> bool:
        stmt = select(SchoolClass.id).where(
            SchoolClass.id == class_id, SchoolClass.teacher_id == teacher_id
        )
        return self._scalar(stmt) is not None

    def is_enrolled(self, class_id: str, student_id: str) -> bool:
        stmt = select(ClassStudent.class_id).where(
            ClassStudent.class_id == class_id, ClassStudent.student_id == student_id
        )
        return self._scalar(stmt) is not None

    def get_class(self, class_id: str) -> Optional[Dict[str, Any]]:
        try:
            with self.SessionLocal() as db:
                row = db.get(SchoolClass, class_id)
                if row is None:
                    return None
                return {"id": row.id, "name": row.name, "teacher_id": row.teacher_id}
        except SQLAlchemyError as e:
            raise StoreError(f"class lookup failed: {e}") from e

    def find_attendance(self, class_id: str, student_id: str, day: date) -> Optional[AttendanceRow]:
        stmt = select(Attendance).where(
            Attendance.class_id == class_id,
            Attendance.student_id == student_id,
            Attendance.date == day,
        )
        try:
            with self.SessionLocal() as db:
                record = db.execute(stmt).unique().scalars().first()
                return _record_dict(record) if record else None
        except SQLAlchemyError as e:
            raise StoreError(f"attendance lookup failed: {e}") from e

    def insert_attendance(self, row: AttendanceRow) -> AttendanceRow:
        record = Attendance(
            class_id=row["class_id"],
            student_id=row["student_id"],
            date=row["date"],
            marked=row.get("marked", True),
            signal_strength=row.get("signal_strength"),
            scan_payload=row.get("scan_payload"),
        )
        if row.get("created_at") is not None:
            record.created_at = row["created_at"]
        try:
            with self.SessionLocal() as db:
                db.add(record)
                db.commit()
                return _record_dict(record)
        except IntegrityError as e:
            raise DuplicateKey(
                f"attendance already exists for {row['class_id']}/{row['student_id']}/{row['date']}"
            ) from e
        except SQLAlchemyError as e:
            raise StoreError(f"attendance insert failed: {e}") from e

    def list_class_attendance(self, class_id: str, day: Optional[date] = None) -> List[AttendanceRow]:
        stmt = (
            select(Attendance)
            .where(Attendance.class_id == class_id)
            .order_by(Attendance.date.desc(), Attendance.id.desc())
        )
        if day is not None:
            stmt = stmt.where(Attendance.date == day)

        result = []
        for record in self._records(stmt):
            item = _listing_dict(record)
            student = record.student
            item["student"] = {
                "id": record.student_id,
                "name": student.name if student else None,
                "enrollment_no": student.enrollment_no if student else None,
            }
            result.append(item)
        return result

    def list_student_attendance(self, student_id: str) -> List[AttendanceRow]:
        stmt = (
            select(Attendance)
            .where(Attendance.student_id == student_id)
            .order_by(Attendance.date.desc(), Attendance.id.desc())
        )

        result = []
        for record in self._records(stmt):
            item = _listing_dict(record)
            school_class = record.school_class
            item["class"] = {
                "id": record.class_id,
                "name": school_class.name if school_class else None,
            }
            result.append(item)
        return result

    # --- helpers ---

    def _scalar(self, stmt):
        try:
            with self.SessionLocal() as db:
                return db.execute(stmt).scalars().first()
        except SQLAlchemyError as e:
            raise StoreError(f"lookup failed: {e}") from e

    def _records(self, stmt) -> List[Attendance]:
        try:
            with self.SessionLocal() as db:
                return list(db.execute(stmt).unique().scalars().all())
        except SQLAlchemyError as e:
            raise StoreError(f"attendance listing failed: {e}") from e
