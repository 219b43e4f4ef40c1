import asyncio

import pytest

from nest_assistant.services.gateway_service import TransportError
from nest_assistant.services.reply_service import ESCALATION_FOOTER, Responder, format_answer


class TestFormatAnswer:
    def test_appends_footer_after_blank_line(self):
        assert format_answer("It is available.") == f"It is available.\n\n{ESCALATION_FOOTER}"

    def test_footer_invites_escalation(self):
        assert "reply with 'human'" in ESCALATION_FOOTER


class TestResponder:
    def test_send_passes_through(self, transport):
        ack = asyncio.run(Responder(transport).send("447700900001", "Hello"))

        assert ack is True
        assert transport.sent == [("447700900001", "Hello")]

    def test_send_answer_adds_footer(self, transport):
        asyncio.run(Responder(transport).send_answer("447700900001", "It is available."))
        assert transport.texts_for("447700900001") == [format_answer("It is available.")]

    def test_send_raises_transport_error(self, transport):
        transport.fail = True
        with pytest.raises(TransportError):
            asyncio.run(Responder(transport).send("447700900001", "Hello"))

    def test_try_send_reports_failure(self, transport):
        transport.fail = True

        result = asyncio.run(Responder(transport).try_send("447700900001", "Hello"))

        assert result.ok is False
        assert result.error_code == "send_error"
        assert "gateway down" in result.error

    def test_try_send_success(self, transport):
        result = asyncio.run(Responder(transport).try_send("447700900001", "Hello"))
        assert result.ok is True
        assert result.value is True
