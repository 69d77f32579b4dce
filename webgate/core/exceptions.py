import traceback
from datetime import datetime
from typing import Any

# =============================================================================
# Base Exception
# =============================================================================


class GatewayError(Exception):
    """
    Base exception for every error the gateway knows how to report.

    Provides:
    - a unique error code
    - the HTTP status it maps to
    - detailed context and fix suggestions
    - whether the message may be shown to HTTP callers
    """

    error_code: str = "WG_000"
    error_category: str = "general"
    severity: str = "error"  # debug, info, warning, error, critical
    status_code: int = 500
    expose: bool = True

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        suggestions: list[str] | None = None,
        cause: Exception | None = None,
        recoverable: bool = True,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.suggestions = suggestions or []
        self.cause = cause
        self.recoverable = recoverable
        if status_code is not None:
            self.status_code = status_code
        self.timestamp = datetime.now()
        self.traceback = traceback.format_exc() if cause else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging and diagnostics."""
        return {
            "error_code": self.error_code,
            "error_category": self.error_category,
            "severity": self.severity,
            "status_code": self.status_code,
            "message": self.message,
            "details": self.details,
            "suggestions": self.suggestions,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
            "traceback": self.traceback,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.suggestions:
            parts.append(f"Suggestions: {', '.join(self.suggestions)}")
        return " | ".join(parts)


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(GatewayError):
    """Invalid or unusable configuration."""

    error_code = "WG_CFG_001"
    error_category = "configuration"


class InvalidConfigValueError(ConfigurationError):
    """A single configuration value failed validation."""

    error_code = "WG_CFG_002"

    def __init__(self, key: str, value: Any, expected: str, **kwargs: Any) -> None:
        super().__init__(
            message=f"Invalid configuration value for '{key}': expected {expected}",
            details={"key": key, "value": str(value), "expected": expected},
            suggestions=[f"Provide a valid {expected} value for '{key}'"],
            **kwargs,
        )


class ConfigLoadError(ConfigurationError):
    """The configuration file could not be read or parsed."""

    error_code = "WG_CFG_003"

    def __init__(self, config_path: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            message=f"Failed to load configuration from '{config_path}': {reason}",
            details={"path": config_path, "reason": reason},
            suggestions=[
                "Check if the file is valid JSON",
                "Check file permissions",
            ],
            **kwargs,
        )


# =============================================================================
# Request Exceptions
# =============================================================================


class RequestValidationError(GatewayError):
    """Inbound request body is malformed or fails its schema."""

    error_code = "WG_REQ_001"
    error_category = "request"
    severity = "warning"
    status_code = 400


# =============================================================================
# Web Model Exceptions
# =============================================================================


class WebModelError(GatewayError):
    """Failure while talking to the web model backend."""

    error_code = "WG_WEB_000"
    error_category = "web_model"
    status_code = 502


class CredentialsMissingError(WebModelError):
    """Neither the config nor the cookie source yielded both session cookies."""

    error_code = "WG_AUTH_001"
    status_code = 503

    def __init__(self, config_path: str, **kwargs: Any) -> None:
        super().__init__(
            message=(
                "Missing Gemini cookies. Set gemini.cookie_1psid and gemini.cookie_1psidts "
                f"in {config_path} (or enable gemini.allow_browser_cookies)."
            ),
            details={"config_path": config_path},
            suggestions=["Copy __Secure-1PSID and __Secure-1PSIDTS from a logged-in browser"],
            recoverable=False,
            **kwargs,
        )


class TokenExtractionError(WebModelError):
    """The landing page did not contain an access token."""

    error_code = "WG_AUTH_002"
    status_code = 503

    def __init__(self, http_status: int, **kwargs: Any) -> None:
        super().__init__(
            message=(
                "Failed to initialize Gemini token from web response "
                f"(status={http_status}). Check cookies or proxy behavior."
            ),
            details={"http_status": http_status},
            suggestions=["Refresh the session cookies", "Try without the HTTP proxy"],
            **kwargs,
        )
        self.http_status = http_status


class ClientNotInitializedError(WebModelError):
    error_code = "WG_WEB_001"
    status_code = 503

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(message="Gemini client is not initialized.", **kwargs)


class UnsupportedModelError(WebModelError):
    error_code = "WG_WEB_002"
    status_code = 400

    def __init__(self, model: str, available: list[str] | None = None, **kwargs: Any) -> None:
        super().__init__(
            message=f"Unsupported model: {model}",
            details={"model": model, "available": available or []},
            **kwargs,
        )
        self.model = model


class UploadFailedError(WebModelError):
    error_code = "WG_WEB_003"

    def __init__(self, status: int, **kwargs: Any) -> None:
        super().__init__(
            message=f"File upload failed with status {status}",
            details={"status": status},
            **kwargs,
        )
        self.status = status


class UpstreamRequestError(WebModelError):
    """Non-success HTTP status from the generate endpoint or a hosted API."""

    error_code = "WG_WEB_004"

    def __init__(self, message: str, status: int | None = None, **kwargs: Any) -> None:
        super().__init__(message=message, details={"status": status}, **kwargs)
        self.status = status


class PayloadParseError(WebModelError):
    """No line of the response body parsed as a JSON array."""

    error_code = "WG_WEB_005"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(message="Could not parse Gemini response payload", **kwargs)


class ResponseBodyNotFoundError(WebModelError):
    error_code = "WG_WEB_006"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(message="Failed to parse Gemini response body.", **kwargs)


class NoCandidatesError(WebModelError):
    error_code = "WG_WEB_007"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(message="Gemini returned no candidates.", **kwargs)


# =============================================================================
# Provider Exceptions
# =============================================================================


class ProviderError(GatewayError):
    error_code = "WG_PRV_000"
    error_category = "provider"
    status_code = 503


class ProviderNotRegisteredError(ProviderError):
    """The configured active provider id has no registered implementation."""

    error_code = "WG_PRV_001"

    def __init__(self, provider_id: str, config_path: str, **kwargs: Any) -> None:
        super().__init__(
            message=(
                f"Active provider '{provider_id}' is not registered. "
                f"Update active_provider in {config_path}."
            ),
            details={"provider": provider_id},
            **kwargs,
        )


class ProviderUnavailableError(ProviderError):
    """The active provider failed (or skipped) its last initialization probe."""

    error_code = "WG_PRV_002"

    def __init__(self, provider_label: str, reason: str, **kwargs: Any) -> None:
        super().__init__(
            message=f"Active provider '{provider_label}' is unavailable. {reason}",
            details={"provider": provider_label, "reason": reason},
            suggestions=["Check credentials and reload the configuration"],
            **kwargs,
        )
        self.reason = reason


# =============================================================================
# Runtime Exceptions
# =============================================================================


class RuntimeControlError(GatewayError):
    error_code = "WG_RT_000"
    error_category = "runtime"


class ModeUnavailableError(RuntimeControlError):
    error_code = "WG_RT_001"
    status_code = 409

    def __init__(self, mode: str, **kwargs: Any) -> None:
        label = "WebAI" if mode == "webai" else "Native API"
        super().__init__(message=f"{label} mode is unavailable.", details={"mode": mode}, **kwargs)
        self.mode = mode


class NoAvailableModeError(RuntimeControlError):
    error_code = "WG_RT_002"
    status_code = 503

    def __init__(self, config_path: str, **kwargs: Any) -> None:
        super().__init__(
            message=(
                f"No available mode to start. Check {config_path} "
                "and provider initialization logs."
            ),
            recoverable=False,
            **kwargs,
        )


class ListenerStartError(RuntimeControlError):
    error_code = "WG_RT_003"

    def __init__(self, host: str, port: int, reason: str, **kwargs: Any) -> None:
        super().__init__(
            message=f"Could not listen on {host}:{port}: {reason}",
            details={"host": host, "port": port},
            suggestions=["Stop the existing process or change server.port"],
            **kwargs,
        )


__all__ = [
    "GatewayError",
    "ConfigurationError",
    "InvalidConfigValueError",
    "ConfigLoadError",
    "RequestValidationError",
    "WebModelError",
    "CredentialsMissingError",
    "TokenExtractionError",
    "ClientNotInitializedError",
    "UnsupportedModelError",
    "UploadFailedError",
    "UpstreamRequestError",
    "PayloadParseError",
    "ResponseBodyNotFoundError",
    "NoCandidatesError",
    "ProviderError",
    "ProviderNotRegisteredError",
    "ProviderUnavailableError",
    "RuntimeControlError",
    "ModeUnavailableError",
    "NoAvailableModeError",
    "ListenerStartError",
]
