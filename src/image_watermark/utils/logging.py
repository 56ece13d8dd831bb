"""日志初始化。"""

from __future__ import annotations

import logging

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_log_level(name: str) -> int:
    """将字符串日志级别转换为 logging 常量，未知值回退到 INFO。"""

    return LOG_LEVELS.get((name or "").strip().lower(), logging.INFO)


def setup_logging(level: int = logging.INFO, verbose: bool = False) -> None:
    """初始化项目日志配置。"""

    if verbose:
        fmt = "%(asctime)s [%(threadName)s] %(levelname)s %(name)s: %(message)s"
    else:
        fmt = "%(levelname)s %(message)s"

    logging.basicConfig(level=level, format=fmt, force=True)
