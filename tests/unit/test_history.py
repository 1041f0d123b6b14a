"""Tests for services/history.py."""

from __future__ import annotations

from magenta.services.history import ConversationHistory, Turn


class TestConversationHistory:
    def test_append_order(self) -> None:
        h = ConversationHistory()
        h.add_user("hi")
        h.add_assistant("hello")
        assert h.turns == (Turn("user", "hi"), Turn("assistant", "hello"))
        assert len(h) == 2
        assert h.last == Turn("assistant", "hello")

    def test_turns_is_a_snapshot(self) -> None:
        h = ConversationHistory()
        snapshot = h.turns
        h.add_user("later")
        assert snapshot == ()

    def test_empty_last(self) -> None:
        assert ConversationHistory().last is None

    def test_to_messages_with_system_prompt(self) -> None:
        h = ConversationHistory()
        h.add_user("hi")
        assert h.to_messages("Be brief.") == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "hi"},
        ]

    def test_to_messages_without_system_prompt(self) -> None:
        h = ConversationHistory()
        h.add_user("hi")
        assert h.to_messages() == [{"role": "user", "content": "hi"}]

    def test_no_removal_api(self) -> None:
        assert not hasattr(ConversationHistory(), "clear")
