"""FastAPI dependencies resolving the per-app collaborators kept on ``app.state``."""
import threading

from fastapi import Request

from edupresence.database.base import AttendanceStore
from edupresence.database.factory import build_store
from edupresence.services.attendance import AttendanceService
from edupresence.services.notifications import Notifier
from edupresence.services.sessions import SessionService

_store_lock = threading.Lock()


def get_store(request: Request) -> AttendanceStore:
    state = request.app.state
    if state.store is None:
        with _store_lock:
            if state.store is None:
                state.store = build_store(state.settings)
    return state.store


def get_session_service(request: Request) -> SessionService:
    return SessionService(get_store(request), request.app.state.codec, request.app.state.clock)


def get_attendance_service(request: Request) -> AttendanceService:
    return AttendanceService(get_store(request), request.app.state.clock)


def get_notifier(request: Request) -> Notifier:
    return Notifier(request.app.state.hub)
