"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple

from PIL import Image

from config.settings import AppConfig
from modules.errors import SecretStoreError
from modules.services.secret_provider import SecretProvider
from modules.ui.view_model import ImageGeneratorViewModel
from modules.utils.image_utils import generate_thumbnail

logger = logging.getLogger(__name__)

GalleryItem = Tuple[Any, str]
Choice = Tuple[str, str]


def build_callbacks(
    config: AppConfig,
    view_model: ImageGeneratorViewModel,
    secret_provider: Optional[SecretProvider] = None,
) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions."""

    def _entry_label(index: int, prompt: str) -> str:
        text = " ".join(prompt.split())
        if len(text) > 40:
            text = text[:39] + "…"
        return f"{index + 1}. {text}"

    def _gallery() -> List[GalleryItem]:
        items: List[GalleryItem] = []
        for record in view_model.images:
            try:
                thumbnail = generate_thumbnail(view_model.store.read_asset(record))
            except (OSError, ValueError, Image.DecompressionBombError) as exc:
                logger.warning("Cannot preview image %s: %s", record.id, exc)
                continue
            items.append((thumbnail, record.prompt))
        return items

    def _choices() -> List[Choice]:
        # (label, record id): the checkbox value survives reordering.
        return [(_entry_label(index, record.prompt), str(record.id)) for index, record in enumerate(view_model.images)]

    def _library_status() -> str:
        count = len(view_model.images)
        return f"共 {count} 张图片。" if count else "暂无图片。"

    def on_load() -> tuple[List[GalleryItem], List[Choice], str]:
        view_model.load_images()
        return _gallery(), _choices(), _library_status()

    def on_generate(prompt: str, size: str) -> tuple[str, List[GalleryItem], List[Choice], str]:
        if not (prompt or "").strip():
            return prompt, _gallery(), _choices(), "请输入提示词。"
        if view_model.is_loading:
            return prompt, _gallery(), _choices(), "正在生成，请稍候。"

        view_model.prompt = prompt
        if view_model.generate(size or config.default_size):
            status = "生成成功"
        else:
            status = view_model.last_error or "生成失败"
        return view_model.prompt, _gallery(), _choices(), status

    def on_delete(selected: Sequence[str]) -> tuple[List[GalleryItem], List[Choice], str]:
        ids = [value for value in selected or [] if value]
        if not ids:
            return _gallery(), _choices(), "请选择要删除的图片。"

        view_model.last_error = None
        deleted = view_model.delete_ids(ids)
        status = view_model.last_error or f"已删除 {deleted} 张图片。"
        return _gallery(), _choices(), status

    def on_save_key(api_key: str) -> str:
        if secret_provider is None:
            return "未配置密钥存储。"
        value = (api_key or "").strip()
        if not value:
            return "请输入 API Key。"
        try:
            secret_provider.set(config.api_key_name, value)
        except SecretStoreError as exc:
            return f"保存失败：{exc}"
        return "API Key 已保存。"

    def on_clear_key() -> str:
        if secret_provider is None:
            return "未配置密钥存储。"
        try:
            secret_provider.delete(config.api_key_name)
        except SecretStoreError as exc:
            return f"清除失败：{exc}"
        return "API Key 已清除。"

    return {
        "on_load": on_load,
        "on_generate": on_generate,
        "on_delete": on_delete,
        "on_save_key": on_save_key,
        "on_clear_key": on_clear_key,
    }
