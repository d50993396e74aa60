"""Text-to-image generation through the OpenAI-compatible images API."""

from __future__ import annotations

import base64
import binascii
import logging
from enum import Enum
from typing import Any, Callable, Optional, Protocol

import requests

from config.settings import AppConfig
from modules.errors import (
    DecodeError,
    EmptyResultError,
    InvalidInputError,
    MissingCredentialError,
    RemoteError,
    TransportError,
)

logger = logging.getLogger(__name__)

KeyProvider = Callable[[], Optional[str]]


class ImageSize(str, Enum):
    """Output dimensions accepted by the images endpoint."""

    SQUARE = "1024x1024"
    PORTRAIT = "1024x1536"
    LANDSCAPE = "1536x1024"

    @classmethod
    def parse(cls, value: "ImageSize | str") -> "ImageSize":
        try:
            return cls(value)
        except ValueError as exc:
            supported = ", ".join(size.value for size in cls)
            raise InvalidInputError(f"Unsupported image size {value!r}; expected one of {supported}.") from exc


class ImageGenerating(Protocol):
    """Anything that can turn a prompt into encoded image bytes."""

    def generate(self, prompt: str, size: ImageSize | str) -> bytes: ...


class Text2ImageService:
    """Facade around the remote image generation endpoint.

    One call to :meth:`generate` issues exactly one generation request (plus one
    download when the service answers with a URL instead of inline data). No
    retries happen here.
    """

    def __init__(
        self,
        config: AppConfig,
        key_provider: KeyProvider,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self._key_provider = key_provider
        self._session = session or requests.Session()

    def generate(self, prompt: str, size: ImageSize | str = ImageSize.SQUARE) -> bytes:
        """Generate one image and return its encoded bytes."""
        trimmed = (prompt or "").strip()
        if not trimmed:
            raise InvalidInputError("Prompt must not be empty.")
        image_size = ImageSize.parse(size)

        api_key = self._key_provider()
        if not api_key:
            raise MissingCredentialError()

        payload = {
            "model": self.config.image_model,
            "prompt": trimmed,
            "size": image_size.value,
            "n": 1,
        }
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        logger.info("Requesting %s image from %s", image_size.value, self.config.image_model)
        response = self._send("POST", self.config.generation_url, json=payload, headers=headers)
        return self._extract_image(response)

    # Internal helpers ---------------------------------------------------------
    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self._session.request(method, url, timeout=self.config.request_timeout, **kwargs)
        except requests.Timeout as exc:
            logger.warning("%s %s timed out after %ss", method, url, self.config.request_timeout)
            raise TransportError(f"Request timed out after {self.config.request_timeout:g}s.") from exc
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise TransportError(f"Network request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            logger.warning("%s %s returned HTTP %s", method, url, response.status_code)
            raise RemoteError(response.status_code, response.text)
        return response

    def _extract_image(self, response: requests.Response) -> bytes:
        try:
            body = response.json()
        except ValueError as exc:
            raise DecodeError("Failed to decode image response.") from exc

        items = body.get("data") if isinstance(body, dict) else None
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise DecodeError("Failed to decode image response.")
        if not items:
            raise EmptyResultError()

        first = items[0]
        b64_data = first.get("b64_json")
        url = first.get("url")
        if b64_data:
            if not isinstance(b64_data, str):
                raise DecodeError("Image payload is not a base64 string.")
            try:
                data = base64.b64decode(b64_data, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise DecodeError("Image payload is not valid base64.") from exc
        elif url:
            if not isinstance(url, str):
                raise DecodeError("Image URL is not a string.")
            data = self._send("GET", url).content
        else:
            raise EmptyResultError()

        if not data:
            raise EmptyResultError()
        return data
