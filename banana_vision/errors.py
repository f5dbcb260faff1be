"""Error kinds for image requests and their classification."""

from __future__ import annotations

from typing import Any

QUOTA_MARKERS = ("resource_exhausted", "quota")

RATE_LIMITED_MESSAGE = "Usage is currently limited due to high demand. Please try again in about a minute."
REJECTED_MESSAGE = "The request was rejected. The content type may not be supported."
UNAVAILABLE_MESSAGE = "The service is temporarily unstable. Please try again shortly."
GENERIC_MESSAGE = "Something went wrong. Please try again."


class ImageRequestError(RuntimeError):
    """Base class for every failure surfaced by an image request."""

    kind = "unknown"
    retryable = False

    def __init__(self, message: str, *, code: int | None = None, attempts: int = 0) -> None:
        super().__init__(message)
        self.code = code
        self.attempts = attempts


class ValidationError(ImageRequestError):
    kind = "validation"


class NoArtifactError(ImageRequestError):
    kind = "no_artifact"

    def __init__(self, message: str = "No image data found in the response.", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class RateLimited(ImageRequestError):
    kind = "rate_limited"
    retryable = True


class ServiceUnavailable(ImageRequestError):
    kind = "service_unavailable"
    retryable = True


class RejectedRequest(ImageRequestError):
    kind = "rejected_request"


class UnknownError(ImageRequestError):
    kind = "unknown"


def status_code_of(exc: BaseException) -> int | None:
    for attr in ("code", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def is_quota_signal(exc: BaseException) -> bool:
    status = str(getattr(exc, "status", None) or "")
    text = f"{status} {exc}".lower()
    return any(marker in text for marker in QUOTA_MARKERS)


def _describe(exc: BaseException, code: int | None) -> str:
    text = str(exc).strip() or type(exc).__name__
    if code is not None and str(code) not in text:
        text = f"{code} {text}"
    return text


def classify_error(exc: BaseException) -> ImageRequestError:
    """Map a raw client failure onto one of the request error kinds.

    Already-classified errors pass through untouched. The original failure is
    not chained here; callers raise the result ``from`` the raw exception.
    """
    if isinstance(exc, ImageRequestError):
        return exc
    code = status_code_of(exc)
    message = _describe(exc, code)
    if code == 429 or is_quota_signal(exc):
        return RateLimited(message, code=code)
    if code == 503:
        return ServiceUnavailable(message, code=code)
    if code == 400:
        return RejectedRequest(message, code=code)
    return UnknownError(message, code=code)


def user_message(error: BaseException) -> str:
    text = str(error) or repr(error)
    if "429" in text or "Quota" in text or "quota" in text or "RESOURCE_EXHAUSTED" in text:
        return RATE_LIMITED_MESSAGE
    if "400" in text:
        return REJECTED_MESSAGE
    if "503" in text:
        return UNAVAILABLE_MESSAGE
    return GENERIC_MESSAGE
