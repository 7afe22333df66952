"""
SearchFlux: 多区域搜索服务的高可用异步客户端

核心是请求传输层 (searchflux.transport):
    - HostRegistry: 主机健康状态登记
    - RetryStrategy: 按优先级故障切换与超时递增
    - HttpTransport: 请求生命周期与结果分类
    - TaskPoller: 写操作后的任务持久化轮询
"""

__version__ = "1.0.0"
