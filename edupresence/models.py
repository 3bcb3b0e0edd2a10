from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, timezone

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    """Teacher or student identity (read-only here)."""
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=True)
    enrollment_no = Column(String, nullable=True)  # only for students

    def __repr__(self):
        return f"<User(id={self.id}, name={self.name})>"


class SchoolClass(Base):
    """A class and the teacher who owns it."""
    __tablename__ = "classes"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    teacher_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)

    def __repr__(self):
        return f"<SchoolClass(id={self.id}, name={self.name}, teacher_id={self.teacher_id})>"


class ClassStudent(Base):
    """Enrollment of a student in a class."""
    __tablename__ = "class_students"

    class_id = Column(String, ForeignKey("classes.id"), primary_key=True)
    student_id = Column(String, ForeignKey("users.id"), primary_key=True)


class Attendance(Base):
    """One attendance mark per student, per class, per calendar day."""
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("class_id", "student_id", "date", name="uq_attendance_class_student_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    class_id = Column(String, ForeignKey("classes.id"), index=True, nullable=False)
    student_id = Column(String, ForeignKey("users.id"), index=True, nullable=False)
    date = Column(Date, index=True, nullable=False)
    marked = Column(Boolean, nullable=False, default=True)
    signal_strength = Column(Float, nullable=True)  # RSSI in dBm
    scan_payload = Column(Text, nullable=True)  # opaque face-scan blob
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    student = relationship(User, lazy="joined")
    school_class = relationship(SchoolClass, lazy="joined")

    def __repr__(self):
        return f"<Attendance(class_id={self.class_id}, student_id={self.student_id}, date={self.date})>"
