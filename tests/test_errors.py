"""Unit tests for error classification."""

import asyncio

import httpx
import pytest

from journal_client.error_recovery.errors import (
    ClassifiedError,
    ErrorClassifier,
    ErrorKind,
    RequestError,
)


@pytest.fixture
def classifier():
    return ErrorClassifier()


class TestErrorKind:
    """Tests for kind properties."""

    @pytest.mark.parametrize("kind", [ErrorKind.NETWORK, ErrorKind.SERVER, ErrorKind.TIMEOUT])
    def test_transient_kinds(self, kind):
        """Transient kinds retry and feed the breaker."""
        assert kind.retryable is True
        assert kind.counts_against_breaker is True

    @pytest.mark.parametrize(
        "kind", [ErrorKind.VALIDATION, ErrorKind.AUTHENTICATION, ErrorKind.SERVICE_UNAVAILABLE]
    )
    def test_terminal_kinds(self, kind):
        """Other kinds never retry and never feed the breaker."""
        assert kind.retryable is False
        assert kind.counts_against_breaker is False


class TestClassifyStatus:
    """Tests for classify_status."""

    def test_success_is_none(self, classifier):
        """2xx and 3xx statuses are not failures."""
        assert classifier.classify_status(200) is None
        assert classifier.classify_status(304) is None

    def test_400_validation(self, classifier):
        """400 is a non-retryable validation error."""
        result = classifier.classify_status(400, "title is required")
        assert result.kind == ErrorKind.VALIDATION
        assert result.retryable is False
        assert result.message == "title is required"
        assert result.status == 400

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_statuses(self, classifier, status):
        """401 and 403 are authentication errors."""
        result = classifier.classify_status(status)
        assert result.kind == ErrorKind.AUTHENTICATION
        assert result.counts_against_breaker is False

    @pytest.mark.parametrize("status", [500, 502, 503])
    def test_server_statuses(self, classifier, status):
        """5xx statuses are retryable server errors."""
        result = classifier.classify_status(status)
        assert result.kind == ErrorKind.SERVER
        assert result.retryable is True
        assert str(status) in result.message

    def test_other_client_error(self, classifier):
        """Other 4xx statuses are treated as non-retryable validation errors."""
        result = classifier.classify_status(404)
        assert result.kind == ErrorKind.VALIDATION
        assert result.retryable is False


class TestClassifyException:
    """Tests for classify_exception."""

    def test_timeout(self, classifier):
        """asyncio and httpx timeouts classify as TIMEOUT."""
        assert classifier.classify_exception(asyncio.TimeoutError()).kind == ErrorKind.TIMEOUT
        assert classifier.classify_exception(httpx.ReadTimeout("slow")).kind == ErrorKind.TIMEOUT

    def test_connection_refused(self, classifier):
        """Refused connections classify as NETWORK."""
        result = classifier.classify_exception(ConnectionRefusedError("refused"))
        assert result.kind == ErrorKind.NETWORK
        assert result.retryable is True

    def test_httpx_transport_error(self, classifier):
        """httpx transport errors classify as NETWORK."""
        result = classifier.classify_exception(httpx.ConnectError("boom"))
        assert result.kind == ErrorKind.NETWORK

    def test_request_error_keeps_kind(self, classifier):
        """An already classified RequestError keeps its kind."""
        error = RequestError(ErrorKind.VALIDATION, "bad", {"status": 400})
        result = classifier.classify_exception(error)
        assert result.kind == ErrorKind.VALIDATION
        assert result.status == 400

    def test_message_patterns(self, classifier):
        """Generic errors that look like transport faults are recognised."""
        assert classifier.classify_exception(RuntimeError("Network is unreachable")).kind == ErrorKind.NETWORK
        assert classifier.classify_exception(RuntimeError("operation timed out")).kind == ErrorKind.TIMEOUT

    def test_programming_error_surfaces(self, classifier):
        """Errors that are not transport faults are not classified."""
        assert classifier.classify_exception(TypeError("unsupported operand")) is None
        assert classifier.is_retryable(KeyError("title")) is False


class TestRequestError:
    """Tests for the RequestError value."""

    def test_context_has_timestamp(self):
        """A timestamp is always present in the context."""
        error = RequestError(ErrorKind.SERVER, "down", {"endpoint": "/auth/login"})
        assert "timestamp" in error.context
        assert error.retryable is True

    def test_to_dict(self):
        """to_dict exposes kind, message and context."""
        error = RequestError(ErrorKind.TIMEOUT, "Request timeout", {"method": "GET"})
        data = error.to_dict()
        assert data["kind"] == "timeout"
        assert data["message"] == "Request timeout"
        assert data["context"]["method"] == "GET"

    def test_classified_error_of(self):
        """ClassifiedError.of derives flags from the kind."""
        classified = ClassifiedError.of(ErrorKind.AUTHENTICATION, "nope", 401)
        assert classified.retryable is False
        assert classified.counts_against_breaker is False
