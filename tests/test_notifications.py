import asyncio

import pytest

from edupresence.services.notifications import (
    ATTENDANCE_MARKED, SESSION_STARTED, ConnectionHub, Notifier, Subscriber,
)


class FakeSubscriber(Subscriber):
    def __init__(self, sid: str, fail: bool = False):
        self.id = sid
        self.fail = fail
        self.messages = []

    async def send_json(self, message):
        if self.fail:
            raise ConnectionError("socket closed")
        self.messages.append(message)


def _hub_with(*subscribers):
    hub = ConnectionHub()
    for subscriber in subscribers:
        hub.connect(subscriber)
    return hub


def test_session_started_reaches_every_subscriber():
    a, b = FakeSubscriber("a"), FakeSubscriber("b")
    hub = _hub_with(a, b)
    hub.join_group("a", "C1")

    asyncio.run(Notifier(hub).announce_session_started("C1", "Physics 101", "T1", "tok", 1000))

    for subscriber in (a, b):
        assert subscriber.messages == [{
            "event": SESSION_STARTED,
            "data": {
                "class_id": "C1",
                "class_name": "Physics 101",
                "teacher_id": "T1",
                "session_token": "tok",
                "timestamp": "1970-01-01T00:16:40+00:00",
            },
        }]


def test_attendance_marked_only_reaches_the_class_group():
    in_c1, in_c2, idle = FakeSubscriber("in_c1"), FakeSubscriber("in_c2"), FakeSubscriber("idle")
    hub = _hub_with(in_c1, in_c2, idle)
    hub.join_group("in_c1", "C1")
    hub.join_group("in_c2", "C2")
    record = {"id": 1, "class_id": "C1", "student_id": "S1", "date": "1970-01-01", "marked": True}

    asyncio.run(Notifier(hub).announce_attendance_marked("C1", "S1", record, 1010))

    assert in_c1.messages[0]["event"] == ATTENDANCE_MARKED
    assert in_c1.messages[0]["data"]["record"] == record
    assert in_c1.messages[0]["data"]["student_id"] == "S1"
    assert in_c2.messages == []
    assert idle.messages == []


def test_any_client_may_join_any_group():
    stranger = FakeSubscriber("stranger")
    hub = _hub_with(stranger)

    assert hub.join_group("stranger", "C1") is True
    assert hub.members("C1") == {"stranger"}


def test_leave_and_disconnect_stop_delivery():
    leaver, dropper = FakeSubscriber("leaver"), FakeSubscriber("dropper")
    hub = _hub_with(leaver, dropper)
    hub.join_group("leaver", "C1")
    hub.join_group("dropper", "C1")

    assert hub.leave_group("leaver", "C1") is True
    assert hub.leave_group("leaver", "C1") is False
    hub.disconnect("dropper")

    delivered = asyncio.run(hub.publish("C1", ATTENDANCE_MARKED, {}))

    assert delivered == 0
    assert hub.members("C1") == set()
    assert hub.connection_count == 1


def test_join_requires_a_connected_subscriber():
    hub = ConnectionHub()

    assert hub.join_group("ghost", "C1") is False
    assert hub.members("C1") == set()


def test_failed_delivery_is_dropped_silently():
    healthy, broken = FakeSubscriber("healthy"), FakeSubscriber("broken", fail=True)
    hub = _hub_with(healthy, broken)
    hub.join_group("broken", "C1")

    # Must not raise
    asyncio.run(Notifier(hub).announce_session_started("C1", "Physics 101", "T1", "tok", 1000))

    assert len(healthy.messages) == 1
    assert hub.connection_count == 1
    assert hub.members("C1") == set()


def test_subscriber_must_implement_send_json():
    class Silent(Subscriber):
        id = "silent"

    with pytest.raises(TypeError):
        Silent()
