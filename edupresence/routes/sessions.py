# edupresence/routes/sessions.py
from fastapi import APIRouter, BackgroundTasks, Depends

from edupresence.dependencies import get_notifier, get_session_service
from edupresence.errors import BadRequest
from edupresence.schemas import (
    SessionStartIn, SessionStartOut, SessionValidateIn, SessionValidateOut, error_responses,
)
from edupresence.services.notifications import Notifier, iso_timestamp
from edupresence.services.sessions import SessionService

router = APIRouter(
    prefix="/api/ble",
    tags=["Attendance Sessions"],
    responses=error_responses(400, 401, 403, 500),
)


@router.post("/session", response_model=SessionStartOut)
def start_session(
    body: SessionStartIn,
    background_tasks: BackgroundTasks,
    sessions: SessionService = Depends(get_session_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Opens a 5 minute attendance window and tells every dashboard about it."""
    if not body.class_id or not body.teacher_id:
        raise BadRequest("Missing class_id or teacher_id")

    started = sessions.start_session(body.class_id, body.teacher_id)

    # Runs after the response is sent; delivery problems never affect it.
    background_tasks.add_task(
        notifier.announce_session_started,
        started.session.class_id,
        started.class_name,
        started.session.teacher_id,
        started.token,
        started.session.issued_at,
    )
    return SessionStartOut(
        session_token=started.token,
        expires_at=iso_timestamp(started.session.expires_at),
    )


@router.post("/validate", response_model=SessionValidateOut)
def validate_session(
    body: SessionValidateIn,
    sessions: SessionService = Depends(get_session_service),
):
    if not body.session_token:
        raise BadRequest("Missing session_token")

    validated = sessions.validate_session(body.session_token)
    return SessionValidateOut(
        class_id=validated.session.class_id,
        class_name=validated.class_name,
        teacher_id=validated.session.teacher_id,
    )
