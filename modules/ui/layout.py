"""Gradio layout composition for prompt-to-image generation and the library."""

from __future__ import annotations

from typing import Any, Optional

import gradio as gr

from config.settings import SUPPORTED_SIZES, AppConfig
from modules.pipelines.text2img import Text2ImageService
from modules.services.history_service import GenerationHistoryService
from modules.services.secret_provider import SecretProvider, api_key_provider, build_secret_provider
from modules.ui.callbacks import build_callbacks
from modules.ui.view_model import ImageGeneratorViewModel


def build_view_model(config: AppConfig, secret_provider: SecretProvider) -> ImageGeneratorViewModel:
    """Wire the generation client and image store together."""
    service = Text2ImageService(config, api_key_provider(secret_provider, config.api_key_name))
    store = GenerationHistoryService(config.data_dir, metadata_filename=config.metadata_filename)
    return ImageGeneratorViewModel(service, store, default_size=config.default_size)


def build_app(config: AppConfig, secret_provider: Optional[SecretProvider] = None) -> Any:
    """Compose and return the Gradio application."""
    if secret_provider is None:
        defaults = {config.api_key_name: config.openai_key} if config.openai_key else None
        secret_provider = build_secret_provider(config.keyring_service, defaults)

    view_model = build_view_model(config, secret_provider)
    callbacks_map = build_callbacks(config, view_model, secret_provider)

    def _load():
        gallery, choices, status = callbacks_map["on_load"]()
        return gallery, gr.update(choices=choices, value=[]), status

    def _generate(prompt: str, size: str):
        prompt_value, gallery, choices, status = callbacks_map["on_generate"](prompt, size)
        return prompt_value, gallery, gr.update(choices=choices, value=[]), status

    def _delete(selected: list[str]):
        gallery, choices, status = callbacks_map["on_delete"](selected)
        return gallery, gr.update(choices=choices, value=[]), status

    with gr.Blocks(title="AI Image Generator") as demo:
        gr.Markdown("## AI 图像生成")

        with gr.Tab("生成"):
            with gr.Row():
                prompt = gr.Textbox(
                    label="提示词",
                    lines=3,
                    placeholder="描述你想要生成的图像",
                    scale=4,
                )
                size = gr.Dropdown(
                    label="尺寸",
                    choices=list(SUPPORTED_SIZES),
                    value=config.default_size,
                    scale=1,
                )
            generate_btn = gr.Button("生成图像", variant="primary")
            status = gr.Markdown("准备就绪。")

            gallery = gr.Gallery(label="历史图片", columns=4, object_fit="cover")
            with gr.Row():
                delete_select = gr.CheckboxGroup(label="选择要删除的图片", choices=[], type="value")
                delete_btn = gr.Button("删除所选", variant="stop")

            generate_btn.click(
                fn=_generate,
                inputs=[prompt, size],
                outputs=[prompt, gallery, delete_select, status],
            )
            prompt.submit(
                fn=_generate,
                inputs=[prompt, size],
                outputs=[prompt, gallery, delete_select, status],
            )
            delete_btn.click(
                fn=_delete,
                inputs=[delete_select],
                outputs=[gallery, delete_select, status],
            )

        with gr.Tab("设置"):
            api_key = gr.Textbox(label="OpenAI API Key", type="password", placeholder="sk-...")
            with gr.Row():
                save_key_btn = gr.Button("保存", variant="primary")
                clear_key_btn = gr.Button("清除", variant="stop")
            key_status = gr.Markdown("API Key 保存在系统钥匙串中。")

            save_key_btn.click(fn=callbacks_map["on_save_key"], inputs=[api_key], outputs=[key_status])
            clear_key_btn.click(fn=callbacks_map["on_clear_key"], inputs=[], outputs=[key_status])

        demo.load(fn=_load, inputs=[], outputs=[gallery, delete_select, status])

    return demo
