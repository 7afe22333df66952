"""
配置管理模块

导出清单:
    来自 settings.py:
        load_config(config_path) -> dict[str, Any]
            加载 YAML 配置文件并解析为字典
        init_logging(log_config) -> None
            初始化日志系统 (支持 text/json 格式, console/file 输出)
        merge_config(base, override) -> dict
            深度合并两个配置字典 (override 覆盖 base)
        get_nested(config, *keys, default=None) -> Any
            安全获取嵌套字典值
        DEFAULT_CONFIG: dict[str, Any]
            默认配置字典

    来自 search_config.py:
        SearchConfig: 客户端不可变配置
        build_search_config(config) -> SearchConfig
            从配置字典构建 SearchConfig

配置层次 (优先级从高到低):
    1. 运行时参数 (RequestOptions)
    2. 配置文件 (config.yaml)
    3. 默认配置 (DEFAULT_CONFIG)
"""

from .settings import (
    load_config,
    init_logging,
    DEFAULT_CONFIG,
    merge_config,
    get_nested,
)
from .search_config import SearchConfig, build_search_config

__all__ = [
    "load_config",
    "init_logging",
    "DEFAULT_CONFIG",
    "merge_config",
    "get_nested",
    "SearchConfig",
    "build_search_config",
]
