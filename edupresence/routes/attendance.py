# edupresence/routes/attendance.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends

from edupresence.dependencies import get_attendance_service, get_notifier
from edupresence.errors import BadRequest
from edupresence.schemas import AttendanceListOut, MarkAttendanceIn, MarkAttendanceOut, error_responses
from edupresence.services.attendance import AttendanceService
from edupresence.services.notifications import Notifier

router = APIRouter(
    prefix="/api/attendance",
    tags=["Attendance"],
    responses=error_responses(400, 403, 500),
)


@router.post("/mark", response_model=MarkAttendanceOut)
def mark_attendance(
    body: MarkAttendanceIn,
    background_tasks: BackgroundTasks,
    attendance: AttendanceService = Depends(get_attendance_service),
    notifier: Notifier = Depends(get_notifier),
):
    if not body.class_id or not body.student_id:
        raise BadRequest("Missing class_id or student_id")

    record = attendance.mark(
        body.class_id,
        body.student_id,
        signal_strength=body.signal_strength,
        scan_payload=body.scan_payload,
    )

    background_tasks.add_task(
        notifier.announce_attendance_marked,
        body.class_id,
        body.student_id,
        record,
        attendance.clock(),
    )
    return MarkAttendanceOut(attendance=record)


@router.get("/class/{class_id}", response_model=AttendanceListOut)
def class_attendance(
    class_id: str,
    date: Optional[str] = None,
    attendance: AttendanceService = Depends(get_attendance_service),
):
    """Attendance for a class, newest day first, optionally for one day (YYYY-MM-DD)."""
    return AttendanceListOut(attendance=attendance.class_attendance(class_id.strip(), date))


@router.get("/student/{student_id}", response_model=AttendanceListOut)
def student_attendance(
    student_id: str,
    attendance: AttendanceService = Depends(get_attendance_service),
):
    return AttendanceListOut(attendance=attendance.student_attendance(student_id.strip()))
