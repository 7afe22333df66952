"""
SearchFlux 测试套件

测试目录结构:
    tests/
    ├── __init__.py
    ├── conftest.py                  # pytest fixtures (伪造 Session、配置)
    ├── test_cli.py                  # CLI 入口测试
    ├── test_config.py               # 配置加载测试
    ├── test_models.py               # 数据模型与异常测试
    ├── clients/
    │   └── test_index.py            # 索引操作封装测试
    └── transport/
        ├── test_hosts.py            # 主机登记表测试
        ├── test_lock.py             # 读写锁测试
        ├── test_executor.py         # 传输执行器测试
        ├── test_poller.py           # 任务轮询器测试
        └── retry/
            └── test_strategy.py     # 重试策略测试
"""
