"""
Tests for DeliveryCoordinator: sends, typing indicators, read receipts and
command dispatch, driven through a recording transport double.
"""

from unittest import mock

import pytest

from jobnest_server.exception.errors import (
    EmptyMessage, MissingReceiver, PersistenceFailure, ValidationFailure
)
from jobnest_server.messaging.commands import (
    GoOnline, MarkAsRead, SendMessage, StopTyping, Typing
)
from jobnest_server.messaging.coordinator import DeliveryCoordinator
from jobnest_server.messaging.models import ConnectionSession


@pytest.fixture
def session_a():
    return ConnectionSession("sid-a", "A")


class TestSendMessage:
    """Validate, persist, acknowledge the sender, push to an online receiver."""

    def test_valid_send_is_immediately_in_history(self, coordinator, store):
        msg = coordinator.send_message("A", "B", "Hello")
        history = store.find_between("A", "B")
        assert [m.message_id for m in history] == [msg.message_id]

    def test_body_is_trimmed(self, coordinator):
        assert coordinator.send_message("A", "B", "  Hi there \n").body == "Hi there"

    @pytest.mark.parametrize("body", ["", "   ", "\n\t", None])
    def test_blank_body_persists_nothing(self, coordinator, store, emitter, body):
        with pytest.raises(EmptyMessage, match="Message cannot be empty"):
            coordinator.send_message("A", "B", body, origin_handle="sid-a")
        assert store.find_between("A", "B") == []
        assert emitter.sent == []

    @pytest.mark.parametrize("receiver", [None, "", "  "])
    def test_missing_receiver(self, coordinator, store, receiver):
        with pytest.raises(MissingReceiver, match="Receiver ID is required"):
            coordinator.send_message("A", receiver, "Hello")
        assert store.find_involving("A") == []

    def test_missing_receiver_checked_before_body(self, coordinator):
        with pytest.raises(MissingReceiver):
            coordinator.send_message("A", None, "")

    def test_sequential_sends_keep_order(self, coordinator, store):
        s1 = coordinator.send_message("A", "B", "S1")
        s2 = coordinator.send_message("A", "B", "S2")
        assert [m.message_id for m in store.find_between("A", "B")] == [s1.message_id, s2.message_id]

    def test_persistence_failure_emits_nothing(self, presence, emitter):
        failing_store = mock.Mock()
        failing_store.create.side_effect = PersistenceFailure("Failed to store message")
        presence.register("B", "sid-b")
        coordinator = DeliveryCoordinator(failing_store, presence, emitter)

        with pytest.raises(PersistenceFailure):
            coordinator.send_message("A", "B", "Hello", origin_handle="sid-a")
        assert emitter.sent == []

    def test_offline_receiver_scenario(self, coordinator, emitter, aggregator, users):
        """A sends to offline B; B later sees one conversation with one unread."""
        a, b = users["alice"], users["bob"]

        msg = coordinator.send_message(a, b, "Hello", origin_handle="sid-a")

        assert emitter.events_for("sid-a") == [
            ("messageSent", {"success": True, "message": msg.to_dict()})
        ]
        assert len(emitter.sent) == 1

        conversations = aggregator.list_conversations(b)
        assert len(conversations) == 1
        assert conversations[0].partner_id == a
        assert conversations[0].unread_count == 1
        assert conversations[0].last_message == "Hello"

    def test_online_receiver_scenario(self, coordinator, presence, emitter):
        """A sends to online B: both get the same stored message."""
        presence.register("B", "sid-b")

        coordinator.send_message("A", "B", "Hi", origin_handle="sid-a")

        [(sent_event, sent)] = emitter.events_for("sid-a")
        [(new_event, new)] = emitter.events_for("sid-b")
        assert sent_event == "messageSent"
        assert new_event == "newMessage"
        assert new["senderId"] == "A"
        assert sent["message"]["_id"] == new["message"]["_id"]
        assert sent["message"]["message"] == new["message"]["message"] == "Hi"

    def test_stale_handle_still_succeeds(self, coordinator, presence, emitter, store):
        presence.register("B", "sid-dead")
        emitter.dead_handles.add("sid-dead")

        msg = coordinator.send_message("A", "B", "Hello", origin_handle="sid-a")

        assert store.find_between("A", "B")[0].message_id == msg.message_id
        assert emitter.events_for("sid-a")[0][0] == "messageSent"

    def test_rest_send_has_no_sender_ack(self, coordinator, presence, emitter):
        presence.register("B", "sid-b")
        coordinator.send_message("A", "B", "via REST")
        assert [h for h, _, _ in emitter.sent] == ["sid-b"]


class TestTyping:
    def test_typing_reaches_online_receiver(self, coordinator, presence, emitter):
        presence.register("B", "sid-b")
        assert coordinator.typing("A", "B") is True
        assert coordinator.stop_typing("A", "B") is True
        assert emitter.events_for("sid-b") == [
            ("userTyping", {"senderId": "A"}),
            ("userStoppedTyping", {"senderId": "A"}),
        ]

    def test_typing_to_offline_receiver_is_dropped(self, coordinator, emitter):
        assert coordinator.typing("A", "B") is False
        assert emitter.sent == []

    def test_typing_without_receiver_is_ignored(self, coordinator, emitter):
        assert coordinator.typing("A", None) is False
        assert coordinator.stop_typing("A", "") is False
        assert emitter.sent == []


class TestMarkAsRead:
    def test_read_receipt_scenario(self, coordinator, store, presence, emitter):
        """Three unread from B; A marks read; B is told."""
        for i in range(3):
            coordinator.send_message("B", "A", f"m{i}")
        presence.register("B", "sid-b")

        assert coordinator.mark_as_read("A", "B") == 3

        assert all(m.read for m in store.find_between("A", "B"))
        assert store.count_unread("B", "A") == 0
        assert emitter.events_for("sid-b") == [("messagesRead", {"readBy": "A"})]

    def test_mark_as_read_twice_is_harmless(self, coordinator, store):
        coordinator.send_message("B", "A", "hey")
        assert coordinator.mark_as_read("A", "B") == 1
        assert coordinator.mark_as_read("A", "B") == 0
        assert store.count_unread("B", "A") == 0

    def test_only_partner_to_reader_direction_flips(self, coordinator, store):
        coordinator.send_message("B", "A", "to A")
        coordinator.send_message("A", "B", "to B")

        coordinator.mark_as_read("A", "B")

        assert store.count_unread("B", "A") == 0
        assert store.count_unread("A", "B") == 1

    def test_partner_offline_is_fine(self, coordinator, emitter):
        coordinator.send_message("B", "A", "hey")
        assert coordinator.mark_as_read("A", "B") == 1
        assert emitter.sent == []

    def test_missing_partner(self, coordinator):
        with pytest.raises(ValidationFailure, match="Partner ID is required"):
            coordinator.mark_as_read("A", None)


class TestDispatch:
    """Commands from a connection run as that connection's user."""

    def test_send_command(self, coordinator, session_a, store, emitter):
        msg = coordinator.dispatch(session_a, SendMessage("B", "hello"))
        assert msg.sender_id == "A"
        assert emitter.events_for("sid-a")[0][0] == "messageSent"
        assert len(store.find_between("A", "B")) == 1

    def test_validation_error_reported_to_origin_only(self, coordinator, session_a, emitter):
        assert coordinator.dispatch(session_a, SendMessage("B", "  ")) is None
        assert emitter.sent == [
            ("sid-a", "messageError", {"success": False, "error": "Message cannot be empty"})
        ]
        assert emitter.broadcasts == []

    def test_store_failure_reported_to_origin_only(self, session_a, presence, emitter):
        failing_store = mock.Mock()
        failing_store.create.side_effect = PersistenceFailure("Failed to store message")
        presence.register("B", "sid-b")
        coordinator = DeliveryCoordinator(failing_store, presence, emitter)

        assert coordinator.dispatch(session_a, SendMessage("B", "hello")) is None

        assert emitter.sent == [
            ("sid-a", "messageError", {"success": False, "error": "Failed to store message"})
        ]
        assert emitter.broadcasts == []

    def test_typing_commands(self, coordinator, session_a, presence, emitter):
        presence.register("B", "sid-b")
        coordinator.dispatch(session_a, Typing("B"))
        coordinator.dispatch(session_a, StopTyping("B"))
        assert [e for e, _ in emitter.events_for("sid-b")] == ["userTyping", "userStoppedTyping"]

    def test_mark_as_read_command(self, coordinator, session_a):
        coordinator.send_message("B", "A", "x")
        assert coordinator.dispatch(session_a, MarkAsRead("B")) == 1

    def test_mark_as_read_without_partner_reports_error(self, coordinator, session_a, emitter):
        coordinator.dispatch(session_a, MarkAsRead(None))
        assert emitter.sent[0][1] == "messageError"

    def test_go_online_broadcasts_to_others(self, coordinator, session_a, emitter):
        coordinator.dispatch(session_a, GoOnline())
        assert emitter.broadcasts == [("userOnline", {"userId": "A"}, "sid-a")]

    def test_unknown_command_type(self, coordinator, session_a):
        with pytest.raises(TypeError):
            coordinator.dispatch(session_a, object())


class TestPresenceAnnouncements:
    def test_offline_broadcast_skips_closing_connection(self, coordinator, emitter):
        coordinator.announce_offline("A", "sid-a")
        assert emitter.broadcasts == [("userOffline", {"userId": "A"}, "sid-a")]
