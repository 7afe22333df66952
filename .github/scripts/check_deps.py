#!/usr/bin/env python3
"""
检查运行依赖可用性

CI 脚本：在安装 searchflux 之后运行，确认传输层依赖的库都能导入。

检查流程:
    1. 逐一导入 LIBS 中的模块，打印版本号
    2. 任一模块缺失时以退出码 1 结束
"""
import sys

# 导入名 -> 发行包名
LIBS = {"aiohttp": "aiohttp", "yaml": "pyyaml", "pydantic": "pydantic"}

missing = []
for module, dist in LIBS.items():
    try:
        mod = __import__(module)
        print(f"✓ {dist} {getattr(mod, '__version__', 'N/A')}")
    except ModuleNotFoundError:
        print(f"✗ {dist} (missing)")
        missing.append(dist)

if missing:
    print(f"缺少依赖: {' '.join(missing)}", file=sys.stderr)
    sys.exit(1)
