"""
基础日志模块

该模块提供基础日志类，封装loguru功能，提供统一的日志接口
和上下文信息管理。
"""

import sys
import threading
import multiprocessing
from typing import Any, Dict, List, Union

from loguru import logger as loguru_logger

from .logger_config import LoggerConfig, LogLevel


class BaseLogger:
    """
    基础日志类

    封装loguru功能，每条日志都会绑定服务名、端口和进程号等上下文。
    """

    def __init__(self, name: str, config: LoggerConfig):
        """
        初始化基础日志器

        Args:
            name: 日志器名称
            config: 日志配置对象
        """
        self.name = name
        self.config = config
        self._context: Dict[str, Any] = {}
        self._handler_ids: List[int] = []
        self._lock = threading.Lock()
        self._initialized = False

        self._setup_logger()

    def _setup_logger(self) -> None:
        """设置日志器"""
        with self._lock:
            if self._initialized:
                return

            # 移除loguru默认处理器
            loguru_logger.remove()

            if self.config.enable_console_logging:
                handler_id = loguru_logger.add(
                    sys.stderr,
                    level=self.config.level.value,
                    format=self.config.format_string,
                    colorize=self.config.colorize,
                    enqueue=self.config.enable_async,
                    backtrace=self.config.backtrace,
                    diagnose=self.config.diagnose,
                )
                self._handler_ids.append(handler_id)

            if self.config.enable_file_logging:
                self.config.create_log_directory()
                handler_id = loguru_logger.add(**self.config.get_loguru_config(self.name))
                self._handler_ids.append(handler_id)

            self._setup_default_context()
            self._initialized = True

    def _setup_default_context(self) -> None:
        """设置默认上下文信息"""
        self._context.update({
            'service_name': self.config.service_name or 'unknown',
            'service_port': self.config.service_port or 0,
            'process_id': multiprocessing.current_process().pid,
            'logger_name': self.name,
        })

    def _format_message(self, message: str, *args) -> str:
        """格式化消息"""
        if args:
            try:
                message = message.format(*args)
            except (IndexError, KeyError, ValueError):
                message = f"{message} {' '.join(map(str, args))}"
        return message

    def _log(self, level: str, message: str, *args, **kwargs) -> None:
        """内部日志记录方法"""
        formatted_message = self._format_message(message, *args)
        extra = {**self._context, **kwargs}
        # depth=2 跳过 _log 和级别方法，使 {function}:{line} 指向调用方
        bound_logger = loguru_logger.bind(**extra).opt(depth=2)
        bound_logger.log(level, formatted_message)

    def trace(self, message: str, *args, **kwargs) -> None:
        """记录TRACE级别日志"""
        self._log("TRACE", message, *args, **kwargs)

    def debug(self, message: str, *args, **kwargs) -> None:
        """记录DEBUG级别日志"""
        self._log("DEBUG", message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs) -> None:
        """记录INFO级别日志"""
        self._log("INFO", message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        """记录WARNING级别日志"""
        self._log("WARNING", message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs) -> None:
        """记录ERROR级别日志"""
        self._log("ERROR", message, *args, **kwargs)

    def set_level(self, level: Union[str, LogLevel]) -> None:
        """动态设置日志级别"""
        if isinstance(level, str):
            level = LogLevel(level.upper())

        self.config.level = level
        self.close()
        self._setup_logger()

    def close(self) -> None:
        """关闭日志器，移除本日志器添加的处理器"""
        with self._lock:
            for handler_id in self._handler_ids:
                try:
                    loguru_logger.remove(handler_id)
                except ValueError:
                    # 处理器已被其他日志器移除
                    continue
            self._handler_ids.clear()
            self._initialized = False
