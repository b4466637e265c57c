"""日志初始化。"""

from __future__ import annotations

import logging


def setup_logging(level: int = logging.INFO, *, verbose: bool = False) -> None:
    """初始化命令行外壳的日志配置，库代码本身不调用。"""

    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(asctime)s [%(threadName)s] %(levelname)s %(name)s: %(message)s",
    )
    # Pillow 的插件探测日志在 DEBUG 下过于嘈杂。
    logging.getLogger("PIL").setLevel(logging.INFO)
