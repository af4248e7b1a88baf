"""
Exception hierarchy for SermonVault.

Every application error inherits from SermonVaultError, which carries a
message plus an optional provider_name naming the external service
(anthropic, openai, s3, pymupdf) that caused the failure.

    SermonVaultError
    +-- ExtractionError       PDF text could not be read (terminal)
    +-- MetadataError         metadata classifier call failed
    +-- NotASermonError       document rejected by the content validator
    +-- EmbeddingError        embedding call failed (retry vectorize)
    +-- StorageError          object storage call failed
    +-- LLMError              any other model call failure
    |   +-- RateLimitError    quota / rate limit exhausted
    +-- InvalidStateError     pipeline stage invoked out of order
    +-- FunctionHandlerError  analytics function failed

Routes translate these into HTTP responses; services never build
HTTPExceptions themselves.
"""

from typing import Any


class SermonVaultError(Exception):
    """Base exception for all SermonVault errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class ExtractionError(SermonVaultError):
    """Raised when a document cannot be parsed into text."""

    def __init__(
        self,
        message: str = "Failed to extract text from document",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class MetadataError(SermonVaultError):
    """Raised when sermon metadata extraction fails."""

    def __init__(
        self,
        message: str = "Sermon metadata extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotASermonError(SermonVaultError):
    """Raised when the content validator decides a document is not a sermon."""

    def __init__(
        self,
        reason: str,
        confidence: float = 0.0,
        provider_name: str | None = None,
    ) -> None:
        self.reason = reason
        self.confidence = confidence
        super().__init__(
            message=f"Document does not appear to be a sermon: {reason}",
            provider_name=provider_name,
        )


class EmbeddingError(SermonVaultError):
    """Raised when an embedding request fails."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageError(SermonVaultError):
    """Raised when an object storage operation fails."""

    def __init__(
        self,
        message: str = "Object storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(SermonVaultError):
    """Raised when a language model call fails."""

    def __init__(
        self,
        message: str = "LLM request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(LLMError):
    """
    Raised when a provider reports quota exhaustion or rate limiting.

    Surfaced to clients as 429 so it is distinguishable from generic
    failures.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(message=message, provider_name=provider_name)


class InvalidStateError(SermonVaultError):
    """Raised when a pipeline stage runs against a record in the wrong state."""

    def __init__(self, stage: str, expected: str, actual: str) -> None:
        self.stage = stage
        self.expected = expected
        self.actual = actual
        super().__init__(
            message=f"Invalid state for {stage}. Current state: {actual}"
        )


class FunctionHandlerError(SermonVaultError):
    """Raised when an analytics function cannot be executed."""

    def __init__(
        self,
        message: str,
        function_name: str,
        parameters: dict[str, Any] | None = None,
    ) -> None:
        self.function_name = function_name
        self.parameters = parameters or {}
        super().__init__(message=message)
