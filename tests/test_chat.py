"""Chat thread tests."""

import pytest

from sos_dispatch.core.config import settings
from sos_dispatch.core.errors import InvalidTransition, NotFound, ValidationError
from sos_dispatch.core.identity import ANONYMOUS
from sos_dispatch.schemas.sos import SosCreate
from sos_dispatch.services import chat_service, sos_service


def _new_sos(db, broadcaster):
    return sos_service.create_sos(db, broadcaster, SosCreate(latitude=-33.9, longitude=18.4))


def test_append_is_monotonic(db, broadcaster):
    sos = _new_sos(db, broadcaster)
    chat_service.append_chat(db, broadcaster, sos.id, "Requester", "Need water")
    before = sos_service.get_sos(db, sos.id).chat

    sent = chat_service.append_chat(db, broadcaster, sos.id, "Volunteer Ravi", "  On my way ")
    after = sos_service.get_sos(db, sos.id).chat

    assert len(after) == len(before) + 1
    assert [(m.sender, m.message) for m in after[:-1]] == [(m.sender, m.message) for m in before]
    assert after[-1].sender == "Volunteer Ravi"
    assert after[-1].message == "  On my way "
    assert sent.sos_id == sos.id


def test_append_publishes_chat_event(db, broadcaster):
    sos = _new_sos(db, broadcaster)
    chat_service.append_chat(db, broadcaster, sos.id, None, "hello")
    event = broadcaster.events[-1]
    assert event.name.value == "chatMessage"
    assert event.sos_id == sos.id
    assert event.data["sosId"] == sos.id
    assert event.data["sender"] == "Anonymous"
    assert event.data["message"] == "hello"
    assert "timestamp" in event.data


def test_append_preserves_insertion_order(db, broadcaster):
    sos = _new_sos(db, broadcaster)
    for i in range(5):
        chat_service.append_chat(db, broadcaster, sos.id, "s", f"m{i}")
    assert [m.message for m in sos_service.get_sos(db, sos.id).chat] == [f"m{i}" for i in range(5)]


def test_append_unknown_sos(db, broadcaster):
    with pytest.raises(NotFound):
        chat_service.append_chat(db, broadcaster, "nope", "s", "m")
    assert broadcaster.events == []


@pytest.mark.parametrize("message", [None, "", "   ", 42, {"text": "hi"}])
def test_append_requires_message(db, broadcaster, message):
    sos = _new_sos(db, broadcaster)
    with pytest.raises(ValidationError):
        chat_service.append_chat(db, broadcaster, sos.id, "s", message)


@pytest.mark.parametrize("sender", [42, ["a"]])
def test_append_rejects_non_text_sender(db, broadcaster, sender):
    sos = _new_sos(db, broadcaster)
    with pytest.raises(ValidationError):
        chat_service.append_chat(db, broadcaster, sos.id, sender, "hello")
    assert broadcaster.names() == ["newSOS"]


def test_closed_thread_allowed_by_default(db, broadcaster):
    assert settings.chat_on_closed_requests is True
    sos = _new_sos(db, broadcaster)
    sos_service.cancel_sos(db, broadcaster, sos.id, ANONYMOUS)
    chat_service.append_chat(db, broadcaster, sos.id, "s", "still there?")
    assert len(sos_service.get_sos(db, sos.id).chat) == 1


def test_closed_thread_can_be_locked(db, broadcaster):
    sos = _new_sos(db, broadcaster)
    sos_service.cancel_sos(db, broadcaster, sos.id, ANONYMOUS)
    with pytest.raises(InvalidTransition):
        chat_service.append_chat(db, broadcaster, sos.id, "s", "still there?", allow_closed=False)
    assert sos_service.get_sos(db, sos.id).chat == []
