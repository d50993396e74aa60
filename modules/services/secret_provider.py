"""Credential storage backed by the OS keychain with a bundled fallback."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Mapping, Optional, Protocol

import keyring
import keyring.backends.fail
import keyring.errors

from modules.errors import SecretStoreError

logger = logging.getLogger(__name__)


class SecretProvider(Protocol):
    """Name -> secret mapping used for API keys."""

    def get(self, name: str) -> Optional[str]: ...

    def set(self, name: str, value: str) -> None: ...

    def delete(self, name: str) -> None: ...


class KeyringSecretProvider:
    """Store secrets in the OS credential store via ``keyring``."""

    def __init__(self, service_name: str) -> None:
        self.service_name = service_name

    def get(self, name: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service_name, name)
        except keyring.errors.KeyringError as exc:
            logger.warning("Keyring lookup for %s failed: %s", name, exc)
            return None

    def set(self, name: str, value: str) -> None:
        try:
            keyring.set_password(self.service_name, name, value)
        except keyring.errors.KeyringError as exc:
            raise SecretStoreError(f"Could not store {name} in the keychain: {exc}") from exc

    def delete(self, name: str) -> None:
        try:
            keyring.delete_password(self.service_name, name)
        except keyring.errors.PasswordDeleteError:
            return
        except keyring.errors.KeyringError as exc:
            raise SecretStoreError(f"Could not remove {name} from the keychain: {exc}") from exc


class InMemorySecretProvider:
    """Process-lifetime secret store, mainly for tests."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, name: str) -> Optional[str]:
        with self._lock:
            return self._values.get(name)

    def set(self, name: str, value: str) -> None:
        with self._lock:
            self._values[name] = value

    def delete(self, name: str) -> None:
        with self._lock:
            self._values.pop(name, None)


class FallbackSecretProvider:
    """Prefer the secure store; seed it from bundled defaults when empty."""

    def __init__(self, primary: SecretProvider, defaults: Optional[Mapping[str, str]] = None) -> None:
        self.primary = primary
        self.defaults = {key: value for key, value in (defaults or {}).items() if value}

    def get(self, name: str) -> Optional[str]:
        value = self.primary.get(name)
        if value:
            return value

        default = self.defaults.get(name)
        if not default:
            return None
        try:
            self.primary.set(name, default)
        except SecretStoreError as exc:
            logger.warning("Could not seed %s into the secure store: %s", name, exc)
        return default

    def set(self, name: str, value: str) -> None:
        self.primary.set(name, value)

    def delete(self, name: str) -> None:
        self.primary.delete(name)


def api_key_provider(provider: SecretProvider, name: str) -> Callable[[], Optional[str]]:
    """Return a callable resolving ``name`` each time it is invoked."""

    def _resolve() -> Optional[str]:
        value = provider.get(name)
        if value is None:
            return None
        value = value.strip()
        return value or None

    return _resolve


def build_secret_provider(service_name: str, defaults: Optional[Mapping[str, str]] = None) -> SecretProvider:
    """Return the keychain-backed provider, or an in-memory one if no backend exists."""
    backend = keyring.get_keyring()
    if isinstance(backend, keyring.backends.fail.Keyring):
        logger.warning("No keyring backend available; API keys are kept in memory only.")
        primary: SecretProvider = InMemorySecretProvider()
    else:
        primary = KeyringSecretProvider(service_name)
    return FallbackSecretProvider(primary, defaults)
