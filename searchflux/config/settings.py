"""
配置管理模块

本模块提供 SearchFlux 的核心配置功能，包括：
- YAML 配置文件加载与解析
- 默认配置定义
- 日志系统初始化
- 配置工具函数

配置文件结构:
    ┌─────────────────────────────────────────────────────────────────┐
    │                        config.yaml                               │
    ├─────────────────────────────────────────────────────────────────┤
    │ global:                                                          │
    │   log:                                                           │
    │     level: info                  # 日志级别                      │
    │     format: text                 # 日志格式 (text/json)          │
    │     output: console              # 输出目标 (console/file)       │
    │                                                                  │
    │ client:                                                          │
    │   application_id: "APP"          # 应用 ID                       │
    │   api_key: "..."                 # API 密钥                      │
    │   hosts: [...]                   # 可选, 覆盖默认主机列表         │
    │                                                                  │
    │ transport:                                                       │
    │   read_timeout: 5                # 读请求基础超时 (秒)            │
    │   write_timeout: 30              # 写请求基础超时 (秒)            │
    │   max_timeout: 60                # 单次尝试超时上限 (秒)          │
    │   host_expiry: 300               # 主机故障标记过期时间 (秒)      │
    │                                                                  │
    │ task:                                                            │
    │   initial_poll_delay: 0.1        # 首次轮询间隔 (秒)              │
    │   max_poll_delay: 5              # 轮询间隔上限 (秒)              │
    └─────────────────────────────────────────────────────────────────┘

配置合并策略:
    使用深度合并 (merge_config)，用户配置覆盖默认配置。
    对于嵌套字典，只覆盖指定的键，未指定的键保留默认值。

使用示例:
    config = merge_config(DEFAULT_CONFIG, load_config("config.yaml"))
    init_logging(config.get("global", {}).get("log"))
    read_timeout = get_nested(config, "transport", "read_timeout", default=5)
"""

import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from ..models.errors import ConfigError


# 默认配置值
# 用户配置会深度合并到此默认配置上
DEFAULT_CONFIG: dict[str, Any] = {
    "global": {
        "log": {
            "level": "info",
            "format": "text",
            "output": "console",
            "file_path": "./logs/searchflux.log",
            "date_format": "%Y-%m-%d %H:%M:%S",
        },
    },
    "client": {
        "application_id": "",
        "api_key": "",
        "hosts": [],
        "headers": {},
        "ssl_verify": True,
        "proxy": "",
        "max_connections": 100,
    },
    "transport": {
        "read_timeout": 5.0,
        "write_timeout": 30.0,
        "max_timeout": 60.0,
        "connect_timeout": 2.0,
        "total_timeout": None,
        "host_expiry": 300.0,
    },
    "task": {
        "initial_poll_delay": 0.1,
        "max_poll_delay": 5.0,
    },
    "indexing": {
        "batch_size": 1000,
    },
}


def load_config(config_path: str | Path) -> dict[str, Any]:
    """
    读取 YAML 配置文件 (不与 DEFAULT_CONFIG 合并)

    Raises:
        ConfigError: 文件缺失或内容无法解析为字典
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"配置文件不存在: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML 解析错误: {e}") from e
    except OSError as e:
        raise ConfigError(f"加载配置文件失败: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError("配置文件格式错误: 根节点必须是字典")

    logging.info(f"配置文件 '{config_path}' 加载成功")
    return config


_LOG_FORMATS = {
    "text": "%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
    "json": (
        '{"time": "%(asctime)s", "level": "%(levelname)s", '
        '"name": "%(name)s", "message": "%(message)s"}'
    ),
}

# 只保留 WARNING 及以上级别的第三方库
_QUIET_LOGGERS = ("aiohttp", "asyncio")


def _open_log_file(file_path: str) -> logging.Handler | None:
    """创建文件日志处理器，目录不可写时返回 None"""
    try:
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(file_path, encoding="utf-8")
    except OSError as e:
        print(f"创建日志文件 {file_path} 失败: {e}，改为输出到控制台", file=sys.stderr)
        return None


def init_logging(log_config: dict[str, Any] | None = None) -> None:
    """
    初始化日志系统

    Args:
        log_config: global.log 配置段，缺省键取 DEFAULT_CONFIG 中的值
    """
    options = {**DEFAULT_CONFIG["global"]["log"], **(log_config or {})}
    level_name = str(options["level"]).upper()

    handler = None
    if options["output"] == "file":
        handler = _open_log_file(options["file_path"])
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)

    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=_LOG_FORMATS.get(options["format"], _LOG_FORMATS["text"]),
        datefmt=options["date_format"],
        handlers=[handler],
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.debug(f"日志级别 {level_name}，处理器 {type(handler).__name__}")


def get_nested(config: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """按键路径读取配置，路径中断或值为 None 时返回 default"""
    node: Any = config
    for key in keys:
        if not isinstance(node, dict) or node.get(key) is None:
            return default
        node = node[key]
    return node


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    深度合并配置字典，返回新字典

    Example:
        >>> merge_config({"transport": {"read_timeout": 5, "host_expiry": 300}},
        ...              {"transport": {"read_timeout": 2}})
        {'transport': {'read_timeout': 2, 'host_expiry': 300}}
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = merge_config(current, value)
        merged[key] = value
    return merged
