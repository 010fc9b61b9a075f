"""
common/logger 模块

该模块提供了基于loguru的日志系统。

主要特性：
- 基于loguru实现
- 支持按集群成员角色和端口号区分日志目录
- 支持日志轮转（按大小）
- 支持日志级别动态配置
- 延迟初始化，使用时自动创建

使用示例：
    # 集群成员启动时初始化（可选，也可以延迟初始化）
    from common.logger import initialize_logging
    initialize_logging(service_type="zone", port=2004, log_dir="/var/log/cluster")

    # 业务代码中使用
    from common.logger import logger
    logger.info("Router started", router_id=1)
"""

from .logger_config import LoggerConfig, LogLevel, RotationConfig
from .base_logger import BaseLogger
from .logger_factory import (
    LoggerFactory,
    logger_factory,
    get_logger,
    initialize_logging,
    set_global_log_level,
)


class _LoggerProxy:
    """日志器代理类，实现延迟初始化"""

    def __getattr__(self, name):
        return getattr(logger_factory.get_logger("general"), name)


# 全局日志对象（使用代理实现延迟初始化）
logger = _LoggerProxy()

__all__ = [
    'LoggerConfig',
    'LogLevel',
    'RotationConfig',
    'BaseLogger',
    'LoggerFactory',
    'logger_factory',
    'logger',
    'get_logger',
    'initialize_logging',
    'set_global_log_level',
]
