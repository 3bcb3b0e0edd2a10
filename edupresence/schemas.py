from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

# --- Request Schemas ---
# Identifier fields are optional at the schema level so a missing value answers
# 400 {"error": "Missing ..."} instead of a validation error.


def _as_id(value):
    """Accepts numeric ids from clients, stores them as strings."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("must be a string or number")
    if isinstance(value, (int, float)):
        return str(value)
    return value.strip() if isinstance(value, str) else value


class SessionStartIn(BaseModel):
    """Teacher opening an attendance window."""
    class_id: Optional[str] = Field(None, examples=["c5f1-physics-101"])
    teacher_id: Optional[str] = Field(None, examples=["t-42"])

    @field_validator("class_id", "teacher_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _as_id(value)


class SessionValidateIn(BaseModel):
    session_token: Optional[str] = None


class MarkAttendanceIn(BaseModel):
    """A student's device reporting presence."""
    class_id: Optional[str] = Field(None, examples=["c5f1-physics-101"])
    student_id: Optional[str] = Field(None, examples=["s-1001"])
    # Older mobile builds still send rssi and face_scan_data.
    signal_strength: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("signal_strength", "rssi"),
        examples=[-60.0],
        description="Received signal strength (dBm).",
    )
    scan_payload: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("scan_payload", "face_scan_data"),
        description="Opaque face-scan blob, stored as given.",
    )

    @field_validator("class_id", "student_id", mode="before")
    @classmethod
    def coerce_ids(cls, value):
        return _as_id(value)


# --- Response Schemas ---

class SessionStartOut(BaseModel):
    success: bool = True
    session_token: str
    expires_at: str
    message: str = "Attendance session started successfully"


class SessionValidateOut(BaseModel):
    valid: bool = True
    class_id: str
    class_name: Optional[str]
    teacher_id: str


class MarkAttendanceOut(BaseModel):
    success: bool = True
    attendance: Dict[str, Any]
    message: str = "Attendance marked successfully"


class AttendanceListOut(BaseModel):
    attendance: List[Dict[str, Any]]


class ErrorOut(BaseModel):
    error: str
    code: Optional[str] = None


def error_responses(*status_codes: int) -> Dict[int, Dict[str, Any]]:
    """OpenAPI `responses=` entry documenting the {"error": ...} body."""
    return {code: {"model": ErrorOut} for code in status_codes}
