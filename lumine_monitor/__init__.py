"""
Lumine Monitor - 主动健康监控服务

负责：
- 按固定间隔探测主站与各区域节点
- 维护每个端点的在线状态、延迟与可用率
- 检测状态变化并写入事件日志
- 每轮探测完成后向观察者推送聚合快照
"""

__version__ = "1.0.0"
__author__ = "AI-B"
