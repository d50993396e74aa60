"""State and actions behind the image generator screen."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

from modules.errors import (
    DecodeError,
    EmptyResultError,
    InvalidInputError,
    MissingCredentialError,
    PersistFailedError,
    RemoteError,
    TransportError,
    WriteFailedError,
)
from modules.pipelines.text2img import ImageGenerating, ImageSize
from modules.services.history_service import GenerationHistoryService, GenerationRecord

logger = logging.getLogger(__name__)


def describe_error(exc: BaseException) -> str:
    """Turn a failure into a sentence suitable for the status line."""
    if isinstance(exc, MissingCredentialError):
        return "缺少 OpenAI API Key，请在设置中填写。"
    if isinstance(exc, RemoteError):
        if exc.message:
            return f"服务器错误（{exc.status_code}）：{exc.message}"
        return f"服务器错误（{exc.status_code}）。"
    if isinstance(exc, TransportError):
        return f"无法连接图像服务：{exc}"
    if isinstance(exc, DecodeError):
        return "无法解析图像响应。"
    if isinstance(exc, EmptyResultError):
        return "未返回图像数据。"
    if isinstance(exc, WriteFailedError):
        return "图像写入磁盘失败。"
    if isinstance(exc, PersistFailedError):
        return "图像库保存失败。"
    if isinstance(exc, InvalidInputError):
        return f"输入无效：{exc}" if str(exc) else "输入无效。"
    return str(exc) or exc.__class__.__name__


class ImageGeneratorViewModel:
    """Sequence prompt -> remote generation -> local store -> refreshed list."""

    def __init__(
        self,
        service: ImageGenerating,
        store: GenerationHistoryService,
        default_size: ImageSize | str = ImageSize.SQUARE,
    ) -> None:
        self.service = service
        self.store = store
        self.default_size = default_size
        self.prompt: str = ""
        self.is_loading: bool = False
        self.last_error: Optional[str] = None
        self.images: List[GenerationRecord] = []
        self._state_lock = threading.Lock()

    def load_images(self) -> List[GenerationRecord]:
        self.images = self.store.get_all()
        return self.images

    @contextmanager
    def _loading(self) -> Iterator[bool]:
        with self._state_lock:
            started = not self.is_loading
            self.is_loading = True
        if not started:
            yield False
            return
        try:
            yield True
        finally:
            with self._state_lock:
                self.is_loading = False

    def generate(self, size: ImageSize | str | None = None) -> bool:
        """Generate an image for the pending prompt; return True when one was saved."""
        trimmed = self.prompt.strip()
        if not trimmed:
            return False

        with self._loading() as started:
            if not started:
                logger.info("Generation already in progress; ignoring request")
                return False

            self.last_error = None
            try:
                data = self.service.generate(trimmed, size or self.default_size)
                self.store.save(data, trimmed)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Generation failed: %s", exc)
                self.last_error = f"生成失败：{describe_error(exc)}"
                return False

            self.load_images()
            self.prompt = ""
            return True

    def delete_at(self, indices: Iterable[int]) -> None:
        """Delete the records at ``indices`` of the currently displayed list."""
        displayed = list(self.images)
        first_error: Optional[str] = None
        for index in sorted(set(indices)):
            if not 0 <= index < len(displayed):
                logger.warning("Ignoring delete of index %s (only %d images shown)", index, len(displayed))
                continue
            record = displayed[index]
            try:
                self.store.delete(record)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Deleting %s failed: %s", record.id, exc)
                if first_error is None:
                    first_error = f"删除失败：{describe_error(exc)}"

        if first_error is not None:
            self.last_error = first_error
        self.load_images()

    def delete_ids(self, ids: Iterable[str]) -> int:
        """Delete the records whose ids are in ``ids``; return how many were found.

        Ids are resolved against the store rather than the cached list, so a
        selection made before another generate still targets the same images.
        """
        wanted = {str(value) for value in ids}
        first_error: Optional[str] = None
        found = 0
        for record in self.store.get_all():
            if str(record.id) not in wanted:
                continue
            found += 1
            try:
                self.store.delete(record)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Deleting %s failed: %s", record.id, exc)
                if first_error is None:
                    first_error = f"删除失败：{describe_error(exc)}"

        if found < len(wanted):
            logger.info("Ignoring %d ids that are no longer in the library", len(wanted) - found)
        if first_error is not None:
            self.last_error = first_error
        self.load_images()
        return found
