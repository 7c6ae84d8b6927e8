"""Unit tests for notification sinks and the exception hierarchy."""

from unittest.mock import MagicMock

from stakeflow.core.exceptions import (
    AlreadyStakedError,
    BuildError,
    ExternalServiceError,
    InvalidAmountError,
    StakeFlowError,
)
from stakeflow.services.notifications import (
    LoggingNotificationSink,
    NotificationKind,
    RecordingNotificationSink,
)


class TestRecordingNotificationSink:
    """Tests for RecordingNotificationSink."""

    def test_records_in_order(self):
        sink = RecordingNotificationSink()
        sink.notify("first", NotificationKind.INFO)
        sink.notify("second", NotificationKind.ERROR, description="why")

        assert [n.message for n in sink.notifications] == ["first", "second"]
        assert sink.of_kind(NotificationKind.ERROR)[0].description == "why"

    def test_drain(self):
        sink = RecordingNotificationSink()
        sink.notify("one", NotificationKind.SUCCESS)

        assert len(sink.drain()) == 1
        assert sink.notifications == []

    def test_forwards(self):
        target = MagicMock(spec=LoggingNotificationSink)
        sink = RecordingNotificationSink(forward_to=target)

        sink.notify("hello", NotificationKind.WARNING)

        target.notify.assert_called_once_with("hello", NotificationKind.WARNING, None)

    def test_logging_sink_accepts_all_kinds(self):
        sink = LoggingNotificationSink()
        for kind in NotificationKind:
            sink.notify("message", kind)


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_build_errors_carry_token_key(self):
        error = InvalidAmountError("Invalid amount chosen for token", "MintA")
        assert isinstance(error, BuildError)
        assert isinstance(error, StakeFlowError)
        assert error.token_key == "MintA"
        assert issubclass(AlreadyStakedError, BuildError)

    def test_external_service_error_message(self):
        error = ExternalServiceError(service="solana-rpc", message="Rate limited", status_code=429)
        assert str(error) == "solana-rpc: Rate limited"
        assert error.status_code == 429
