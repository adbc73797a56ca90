"""Tests for the error hierarchy."""

import pytest

from calldata_interpreter.errors import (
    CLIENT_ERRORS,
    CacheWriteError,
    CallDataTooShort,
    ConfigMissing,
    InterpreterError,
    InvalidAddress,
    NetworkError,
    ReasoningServiceError,
    RegistryError,
    SelectorNotFound,
    TimedOut,
)


class TestInterpreterError:
    def test_str_includes_details(self):
        error = InterpreterError("boom", {"code": 1})
        assert str(error) == "boom | Details: {'code': 1}"

    def test_str_without_details(self):
        assert str(InterpreterError("boom")) == "boom"

    def test_to_dict(self):
        error = SelectorNotFound("0xdeadbeef", {"selector": "0xdeadbeef"})
        assert error.to_dict() == {
            "kind": "SelectorNotFound",
            "message": "No matching function for selector: 0xdeadbeef",
            "details": {"selector": "0xdeadbeef"},
        }


class TestKinds:
    def test_timeout_is_network_error(self):
        assert issubclass(TimedOut, NetworkError)
        assert TimedOut("slow").kind == "TimedOut"

    def test_registry_message_kept(self):
        error = RegistryError("NOTOK")
        assert error.registry_message == "NOTOK"
        assert error.message == "Registry error: NOTOK"

    def test_short_call_data_length(self):
        assert CallDataTooShort(2).details == {"length": 2}

    def test_reasoning_status(self):
        error = ReasoningServiceError(429, "slow down")
        assert error.status_code == 429
        assert "429" in error.message

    def test_config_missing_message(self):
        assert ConfigMissing("DEEPSEEK_API_KEY").message == "DEEPSEEK_API_KEY is not configured"

    @pytest.mark.parametrize(
        "error, is_client",
        [
            (InvalidAddress("0x1"), True),
            (CallDataTooShort(0), True),
            (SelectorNotFound("0x00000000"), False),
            (CacheWriteError("/tmp/x.json", "read-only"), False),
        ],
    )
    def test_client_error_classification(self, error, is_client):
        assert isinstance(error, CLIENT_ERRORS) is is_client
