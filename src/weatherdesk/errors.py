# error taxonomy for the api-access layer
# the classifier turns raw transport failures into one of a closed set of kinds,
# WeatherAPIError is the single exception type that leaves this package

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional

from .models import ClassifiedError, ErrorKind, RequestCategory

SERVER_ERROR_STATUSES = frozenset({500, 502, 503, 504})
GENERIC_MESSAGE = "An unknown error occurred"


class WeatherAPIError(RuntimeError):
    # single error type used to propagate classified failures from this layer
    def __init__(self, error: ClassifiedError):
        super().__init__(error.message)
        self.error = error

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @classmethod
    def of(cls, kind: ErrorKind, message: str, cause: Optional[BaseException] = None) -> "WeatherAPIError":
        return cls(ClassifiedError(kind=kind, message=message, cause=cause))


def _body_message(response) -> Optional[str]:
    # upstream error bodies look like {"code": ..., "type": ..., "message": ...}
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return None


class ErrorClassifier:
    # pure mapping of (error, category) -> ClassifiedError, rules checked in order
    # key health bookkeeping is left to the dispatcher

    def classify(self, error: BaseException, category: RequestCategory) -> ClassifiedError:
        response = getattr(error, "response", None)
        if response is None:
            return ClassifiedError(
                kind=ErrorKind.NETWORK_ERROR,
                message=f"Network error while fetching {category.value} weather: {error}",
                cause=error,
            )

        status = response.status_code
        if status in (401, 403):
            return ClassifiedError(
                kind=ErrorKind.INVALID_API_KEY,
                message=f"API key rejected for {category.value} weather (HTTP {status})",
                cause=error,
            )
        if status == 404:
            return ClassifiedError(
                kind=ErrorKind.LOCATION_NOT_FOUND,
                message="Location not found. Please check the city name.",
                cause=error,
            )
        if status == 429:
            return ClassifiedError(
                kind=ErrorKind.RATE_LIMIT_EXCEEDED,
                message=f"Rate limit exceeded for {category.value} weather",
                cause=error,
            )
        if status in SERVER_ERROR_STATUSES:
            return ClassifiedError(
                kind=ErrorKind.SERVER_ERROR,
                message=f"Weather service unavailable (HTTP {status})",
                cause=error,
            )
        return ClassifiedError(
            kind=ErrorKind.UNKNOWN_ERROR,
            message=_body_message(response) or f"{GENERIC_MESSAGE} (HTTP {status})",
            cause=error,
        )


def exhausted_error(category: RequestCategory, attempts: int) -> ClassifiedError:
    # terminal outcome once every credential in the chain has been tried
    return ClassifiedError(
        kind=ErrorKind.RATE_LIMIT_EXCEEDED,
        message=f"All credentials exhausted for {category.value} weather after {attempts} attempt(s)",
    )


@dataclass(frozen=True)
class ErrorDisplay:
    icon: str
    title: str
    action: str


ERROR_DISPLAYS: Dict[ErrorKind, ErrorDisplay] = {
    ErrorKind.INVALID_API_KEY: ErrorDisplay(
        "🔑", "API Key Error", "Please check your API keys in the .env file and restart the application."
    ),
    ErrorKind.RATE_LIMIT_EXCEEDED: ErrorDisplay(
        "⏱️", "Rate Limit Exceeded", "Please wait a moment before trying again."
    ),
    ErrorKind.LOCATION_NOT_FOUND: ErrorDisplay(
        "🗺️", "Location Not Found", "Please check the city name and try again."
    ),
    ErrorKind.NETWORK_ERROR: ErrorDisplay(
        "📶", "Network Error", "Please check your internet connection and try again."
    ),
    ErrorKind.SERVER_ERROR: ErrorDisplay(
        "🖥️", "Server Error", "The weather service is currently unavailable. Please try again later."
    ),
    ErrorKind.UNKNOWN_ERROR: ErrorDisplay(
        "❓", "Error", "Please try again or contact support if the issue persists."
    ),
}


def describe_error(kind: ErrorKind) -> ErrorDisplay:
    return ERROR_DISPLAYS[kind]
