"""One-off script for checking a real generation end to end."""

import sys
from pathlib import Path

from config.settings import load_config
from modules.ui.layout import build_view_model
from modules.services.secret_provider import build_secret_provider
from modules.utils.image_utils import load_image
from modules.utils.logging import setup_logging


def main() -> None:
    # 1. 准备真实配置与服务对象
    config = load_config()
    setup_logging(config)
    defaults = {config.api_key_name: config.openai_key} if config.openai_key else None
    secrets = build_secret_provider(config.keyring_service, defaults)
    view_model = build_view_model(config, secrets)

    # 2. 准备提示词并调用生成
    view_model.prompt = " ".join(sys.argv[1:]) or "a red fox in a snowy forest, watercolor"
    ok = view_model.generate(config.default_size)

    print("状态:", "生成成功" if ok else view_model.last_error)
    if ok:
        record = view_model.images[0]
        image = load_image(view_model.store.read_asset(record))
        print("图像已保存:", Path(view_model.store.asset_path(record)).resolve(), image.size)


if __name__ == "__main__":
    main()
