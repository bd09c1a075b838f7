"""
Activity Provider Exceptions - Custom exception hierarchy.

Only MissingCredentialError is meant to reach the caller of a batch.
Everything else is isolated per page or per chain by the orchestrator.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class ActivityProviderError(Exception):
    """Base exception for all activity provider errors."""

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        chain_id: Optional[int] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider_name = provider_name
        self.chain_id = chain_id
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "provider_name": self.provider_name,
            "chain_id": self.chain_id,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.provider_name:
            parts.append(f"[provider={self.provider_name}]")
        if self.chain_id is not None:
            parts.append(f"[chain_id={self.chain_id}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class MissingCredentialError(ActivityProviderError):
    """No credential was supplied; raised before any network call."""


class ProviderRequestError(ActivityProviderError):
    """Non-2xx response or transport failure talking to a provider."""

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        chain_id: Optional[int] = None,
        status_code: Optional[int] = None,
        provider_message: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, provider_name, chain_id, original_error, context)
        self.status_code = status_code
        self.provider_message = provider_message
        self.request_url = request_url

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "provider_message": self.provider_message,
            "request_url": self.request_url,
        })
        return data


class InvalidCredentialError(ProviderRequestError):
    """Provider rejected the credential (HTTP 401/403)."""


class MalformedResponseError(ActivityProviderError):
    """Provider payload could not be parsed."""

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        chain_id: Optional[int] = None,
        raw_data: Optional[Any] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, provider_name, chain_id, original_error, context)
        self.raw_data = raw_data

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["raw_data"] = str(self.raw_data)[:500] if self.raw_data else None
        return data


class ConfigurationError(ActivityProviderError):
    """Invalid provider configuration."""

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        config_key: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, provider_name, None, original_error, context)
        self.config_key = config_key

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["config_key"] = self.config_key
        return data
