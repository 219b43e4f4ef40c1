from nest_assistant.services.gateway_service import TransportError
from nest_assistant.services.result import Result


class TestResultSuccess:
    def test_success_creates_ok_result(self):
        result = Result.success(True)
        assert result.ok is True
        assert result.value is True
        assert result.error is None


class TestResultFailure:
    def test_failure_creates_not_ok_result(self):
        result = Result.failure("Gateway down", "send_error")
        assert result.ok is False
        assert result.error == "Gateway down"
        assert result.error_code == "send_error"
        assert result.value is None

    def test_failure_default_code(self):
        assert Result.failure("Error message").error_code == "unknown"

    def test_from_exception_keeps_type_and_message(self):
        result = Result.from_exception(TransportError("gateway down"), "send_error")
        assert result.error == "TransportError: gateway down"
        assert result.error_code == "send_error"
