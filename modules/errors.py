"""Failure types shared by the generation client and the image store."""

from __future__ import annotations

from typing import Optional


class ImageGenError(Exception):
    """Base class for every recoverable failure in the app."""


# Generation client ------------------------------------------------------------
class GenerationError(ImageGenError):
    """Failure while obtaining an image from the remote service."""


class MissingCredentialError(GenerationError):
    def __init__(self) -> None:
        super().__init__("Missing OpenAI API key.")


class InvalidInputError(GenerationError):
    """Rejected locally before any I/O (empty prompt, unsupported size...)."""


class TransportError(GenerationError):
    """No HTTP response was received (connection failure, timeout)."""


class RemoteError(GenerationError):
    """The service answered with a non-2xx status."""

    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.message = message or ""
        text = f"Server error ({status_code})"
        if self.message:
            text += f": {self.message}"
        super().__init__(text)


class DecodeError(GenerationError):
    """A 2xx response whose body does not match the expected schema."""


class EmptyResultError(GenerationError):
    def __init__(self, detail: str = "No image data returned.") -> None:
        super().__init__(detail)


# Image store -------------------------------------------------------------------
class StoreError(ImageGenError):
    """Failure while persisting generated images."""


class WriteFailedError(StoreError):
    """The image file could not be written; the catalog is unchanged."""


class PersistFailedError(StoreError):
    """The catalog could not be written; the in-memory catalog is unchanged."""


# Secrets -----------------------------------------------------------------------
class SecretStoreError(ImageGenError):
    """The secure credential store refused a write or delete."""
