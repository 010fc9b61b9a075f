"""
日志工厂模块

该模块提供日志工厂类，负责创建和管理日志实例，
支持单例模式、延迟初始化和按集群成员区分输出目录。
"""

import threading
from typing import Dict, Optional, Any

from ..utils.singleton import SingletonMeta
from .logger_config import LoggerConfig, LogLevel
from .base_logger import BaseLogger


class LoggerFactory(metaclass=SingletonMeta):
    """
    日志工厂类

    负责创建和管理日志实例。集群成员启动时调用 initialize()，
    之前获取的日志器会按新的服务信息重新创建。
    """

    def __init__(self):
        """初始化日志工厂"""
        self._loggers: Dict[str, BaseLogger] = {}
        self._default_config = LoggerConfig()
        self._lock = threading.RLock()

    def initialize(self, service_type: str = "default", port: int = 0,
                   log_dir: Optional[str] = None,
                   config_dict: Optional[Dict[str, Any]] = None) -> None:
        """
        初始化日志工厂

        Args:
            service_type: 服务类型（集群成员角色名）
            port: 服务端口号
            log_dir: 日志输出目录，指定后启用文件日志
            config_dict: 自定义配置字典
        """
        with self._lock:
            config = LoggerConfig.from_dict(config_dict) if config_dict else LoggerConfig()
            config.service_name = service_type
            config.service_port = port
            if log_dir:
                config.log_dir = log_dir
                config.enable_file_logging = True

            self._default_config = config

            # 丢弃按旧配置创建的日志器
            for logger in self._loggers.values():
                logger.close()
            self._loggers.clear()

    def get_logger(self, logger_type: str = "general") -> BaseLogger:
        """
        获取日志器实例

        Args:
            logger_type: 日志器类型

        Returns:
            BaseLogger: 日志器实例
        """
        if logger_type in self._loggers:
            return self._loggers[logger_type]

        with self._lock:
            if logger_type not in self._loggers:
                self._loggers[logger_type] = BaseLogger(logger_type, self._default_config)
            return self._loggers[logger_type]

    def set_global_level(self, level: str) -> None:
        """
        设置全局日志级别

        Args:
            level: 日志级别
        """
        self._default_config.level = LogLevel(level.upper())
        for logger in self._loggers.values():
            logger.set_level(level)


# 全局日志工厂实例
logger_factory = LoggerFactory()


def get_logger(logger_type: str = "general") -> BaseLogger:
    """获取日志器的便捷函数"""
    return logger_factory.get_logger(logger_type)


def initialize_logging(service_type: str = "default", port: int = 0,
                       log_dir: Optional[str] = None,
                       config_dict: Optional[Dict[str, Any]] = None) -> None:
    """
    初始化日志系统的便捷函数

    Args:
        service_type: 服务类型
        port: 服务端口
        log_dir: 日志输出目录
        config_dict: 配置字典
    """
    logger_factory.initialize(service_type, port, log_dir, config_dict)


def set_global_log_level(level: str) -> None:
    """设置全局日志级别的便捷函数"""
    logger_factory.set_global_level(level)
