"""Configuration loading tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from config.settings import AppConfig, load_config

ENV_KEYS = (
    "IMAGEGEN_DATA_DIR",
    "IMAGEGEN_LOG_DIR",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "OPENAI_IMAGE_MODEL",
    "IMAGEGEN_REQUEST_TIMEOUT",
    "IMAGEGEN_DEFAULT_SIZE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so values written by the .env loader are rolled back too
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    yield


def test_defaults(tmp_path):
    config = load_config(str(tmp_path / "missing.env"))

    assert config.data_dir == Path("data/images")
    assert config.metadata_path == Path("data/images/images.json")
    assert config.generation_url == "https://api.openai.com/v1/images/generations"
    assert config.image_model == "gpt-image-1"
    assert config.request_timeout == 60.0
    assert config.openai_key is None


def test_env_file_values(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "\n".join(
            [
                "# local overrides",
                f"IMAGEGEN_DATA_DIR={tmp_path / 'library'}",
                "OPENAI_API_KEY=sk-from-env-file",
                "OPENAI_BASE_URL=https://proxy.example/v1/",
                "IMAGEGEN_DEFAULT_SIZE=1536x1024",
                "not a setting",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(str(env_file))

    assert config.data_dir == tmp_path / "library"
    assert config.openai_key == "sk-from-env-file"
    assert config.generation_url == "https://proxy.example/v1/images/generations"
    assert config.default_size == "1536x1024"


@pytest.mark.parametrize("raw, expected", [("90", 90.0), ("5", 30.0), ("soon", 60.0)])
def test_request_timeout_bounds(tmp_path, monkeypatch, raw, expected):
    monkeypatch.setenv("IMAGEGEN_REQUEST_TIMEOUT", raw)

    assert load_config(str(tmp_path / "missing.env")).request_timeout == expected


def test_unsupported_default_size_falls_back(tmp_path, monkeypatch):
    monkeypatch.setenv("IMAGEGEN_DEFAULT_SIZE", "640x480")

    assert load_config(str(tmp_path / "missing.env")).default_size == AppConfig().default_size
