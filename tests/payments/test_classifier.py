import httpx
import pytest

from infrastructure.external.payments.classifier import ErrorCategory, ErrorClassifier, GatewayError


@pytest.fixture
def classifier():
    return ErrorClassifier()


def decline_body(**overrides):
    body = {
        "object": "error",
        "type": "card_error",
        "code": "card_declined",
        "decline_code": "insufficient_funds",
        "merchant_message": "Saldo insuficiente en la cuenta del titular (merchant)",
    }
    body.update(overrides)
    return body


def test_card_decline_is_terminal_and_user_safe(classifier):
    error = GatewayError.from_response(402, decline_body())
    verdict = classifier.classify(error, operation="create_charge", attempt=1)

    assert verdict.category is ErrorCategory.CARD_ERROR
    assert verdict.retryable is False
    assert verdict.error_code == "insufficient_funds"
    assert verdict.user_message == "Insufficient funds"
    assert verdict.user_message != error.merchant_message


def test_decline_code_wins_over_retryable_status(classifier):
    error = GatewayError.from_response(503, decline_body(decline_code="stolen_card"))
    assert classifier.is_retryable(error) is False


def test_gateway_user_message_is_passed_through(classifier):
    error = GatewayError.from_response(402, decline_body(user_message="Your card was declined."))
    assert classifier.to_user_message(error) == "Your card was declined."


@pytest.mark.parametrize(
    "status, category",
    [
        (503, ErrorCategory.API_CONNECTION),
        (502, ErrorCategory.API_CONNECTION),
        (429, ErrorCategory.RATE_LIMIT),
    ],
)
def test_transient_statuses_are_retryable(classifier, status, category):
    error = GatewayError.from_response(status, None)
    assert error.category is category
    assert classifier.is_retryable(error) is True


@pytest.mark.parametrize("status", [400, 401, 404])
def test_client_errors_are_terminal(classifier, status):
    assert classifier.is_retryable(GatewayError.from_response(status, {"detail": "nope"})) is False


def test_timeout_exception_is_retryable(classifier):
    error = GatewayError.from_exception(httpx.ReadTimeout("read timed out"))
    assert error.category is ErrorCategory.TIMEOUT
    assert classifier.is_retryable(error) is True
    assert classifier.to_user_message(error) == "The payment provider took too long to respond"


def test_connect_error_is_retryable(classifier):
    error = GatewayError.from_exception(httpx.ConnectError("connection refused"))
    assert error.category is ErrorCategory.API_CONNECTION
    assert classifier.is_retryable(error) is True


def test_network_signature_in_message_is_retryable(classifier):
    error = GatewayError.from_exception(RuntimeError("socket hang up: ECONNRESET"))
    assert error.category is ErrorCategory.API_CONNECTION
    assert classifier.is_retryable(error) is True


def test_unrecognized_exception_is_terminal_unknown(classifier):
    error = GatewayError.from_exception(RuntimeError("boom"))
    verdict = classifier.classify(error, operation="get_charge", attempt=1)
    assert verdict.category is ErrorCategory.UNKNOWN
    assert verdict.retryable is False
    assert verdict.user_message == "Error processing the payment. Please try again."
    assert "boom" not in verdict.user_message


def test_category_message_when_code_is_unmapped(classifier):
    error = GatewayError.from_response(
        400,
        {"type": "invalid_request_error", "code": "param_missing", "merchant_message": "Falta el campo email"},
    )
    assert classifier.to_user_message(error) == "The payment request was rejected."


def test_missing_configuration_is_terminal(classifier):
    error = GatewayError.not_configured()
    verdict = classifier.classify(error, operation="create_charge", attempt=1)
    assert verdict.error_code == "configuration_error"
    assert verdict.retryable is False
