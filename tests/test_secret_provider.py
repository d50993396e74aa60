"""Secret provider tests."""

from __future__ import annotations

import keyring.backends.fail
import keyring.errors
import pytest

from modules.errors import SecretStoreError
from modules.services import secret_provider
from modules.services.secret_provider import (
    FallbackSecretProvider,
    InMemorySecretProvider,
    KeyringSecretProvider,
    api_key_provider,
)


class FakeKeyring:
    """Dictionary standing in for the OS keychain."""

    def __init__(self) -> None:
        self.passwords: dict[tuple[str, str], str] = {}
        self.fail_writes = False

    def get_password(self, service: str, name: str):
        return self.passwords.get((service, name))

    def set_password(self, service: str, name: str, value: str) -> None:
        if self.fail_writes:
            raise keyring.errors.PasswordSetError("locked")
        self.passwords[(service, name)] = value

    def delete_password(self, service: str, name: str) -> None:
        if (service, name) not in self.passwords:
            raise keyring.errors.PasswordDeleteError("not found")
        del self.passwords[(service, name)]


@pytest.fixture
def fake_keyring(monkeypatch) -> FakeKeyring:
    fake = FakeKeyring()
    monkeypatch.setattr(secret_provider.keyring, "get_password", fake.get_password)
    monkeypatch.setattr(secret_provider.keyring, "set_password", fake.set_password)
    monkeypatch.setattr(secret_provider.keyring, "delete_password", fake.delete_password)
    return fake


def test_keyring_provider_read_after_write(fake_keyring):
    provider = KeyringSecretProvider("imagegenai")

    assert provider.get("openai_api_key") is None
    provider.set("openai_api_key", "sk-one")
    assert provider.get("openai_api_key") == "sk-one"
    assert fake_keyring.passwords[("imagegenai", "openai_api_key")] == "sk-one"

    provider.delete("openai_api_key")
    provider.delete("openai_api_key")
    assert provider.get("openai_api_key") is None


def test_keyring_write_failure_raises(fake_keyring):
    fake_keyring.fail_writes = True
    provider = KeyringSecretProvider("imagegenai")

    with pytest.raises(SecretStoreError):
        provider.set("openai_api_key", "sk-one")


def test_keyring_read_failure_returns_none(monkeypatch):
    def broken_get(service, name):
        raise keyring.errors.KeyringError("backend unavailable")

    monkeypatch.setattr(secret_provider.keyring, "get_password", broken_get)

    assert KeyringSecretProvider("imagegenai").get("openai_api_key") is None


def test_fallback_prefers_secure_entry():
    primary = InMemorySecretProvider({"openai_api_key": "sk-stored"})
    provider = FallbackSecretProvider(primary, {"openai_api_key": "sk-bundled"})

    assert provider.get("openai_api_key") == "sk-stored"


def test_fallback_seeds_secure_store_from_default():
    primary = InMemorySecretProvider()
    provider = FallbackSecretProvider(primary, {"openai_api_key": "sk-bundled"})

    assert provider.get("openai_api_key") == "sk-bundled"
    assert primary.get("openai_api_key") == "sk-bundled"


def test_fallback_survives_seed_failure(fake_keyring):
    fake_keyring.fail_writes = True
    provider = FallbackSecretProvider(KeyringSecretProvider("imagegenai"), {"openai_api_key": "sk-bundled"})

    assert provider.get("openai_api_key") == "sk-bundled"


def test_fallback_set_is_visible_immediately():
    provider = FallbackSecretProvider(InMemorySecretProvider(), {"openai_api_key": "sk-bundled"})

    provider.set("openai_api_key", "sk-user")

    assert provider.get("openai_api_key") == "sk-user"


def test_fallback_without_default():
    provider = FallbackSecretProvider(InMemorySecretProvider(), {"openai_api_key": ""})

    assert provider.get("openai_api_key") is None


def test_api_key_provider_resolves_lazily():
    store = InMemorySecretProvider()
    resolve = api_key_provider(store, "openai_api_key")

    assert resolve() is None
    store.set("openai_api_key", "   ")
    assert resolve() is None
    store.set("openai_api_key", " sk-live \n")
    assert resolve() == "sk-live"


def test_build_secret_provider_without_backend(monkeypatch):
    monkeypatch.setattr(secret_provider.keyring, "get_keyring", lambda: keyring.backends.fail.Keyring())

    provider = secret_provider.build_secret_provider("imagegenai", {"openai_api_key": "sk-bundled"})

    assert isinstance(provider, FallbackSecretProvider)
    assert isinstance(provider.primary, InMemorySecretProvider)
    assert provider.get("openai_api_key") == "sk-bundled"
