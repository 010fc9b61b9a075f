"""
日志配置模块

该模块提供了日志系统的配置管理功能，支持从字典读取配置，
包括日志级别、格式、输出目录和轮转策略等。

集群成员的日志目录来自启动参数中的输出路径，
每个成员按 "角色_端口" 写入独立的子目录。
"""

from typing import Dict, Any, Optional, Union
from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum


class LogLevel(Enum):
    """日志级别枚举"""
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class RotationConfig:
    """日志轮转配置"""
    # 按文件大小轮转
    size: Optional[str] = "100 MB"
    # 保留时长
    retention: Union[str, int] = "10 days"
    # 压缩格式
    compression: Optional[str] = "zip"


@dataclass
class LoggerConfig:
    """日志配置类"""
    level: LogLevel = LogLevel.INFO
    format_string: str = (
        "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
        "{name}:{function}:{line} - {message}"
    )

    # 输出配置
    log_dir: str = "logs"
    enable_file_logging: bool = False
    enable_console_logging: bool = True

    # loguru 的 enqueue 会启动后台线程，fork 子进程前需要关闭
    enable_async: bool = False

    enable_json_format: bool = False
    rotation: RotationConfig = field(default_factory=RotationConfig)

    colorize: bool = True
    backtrace: bool = True
    diagnose: bool = False

    # 上下文信息
    service_name: Optional[str] = None
    service_port: Optional[int] = None

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'LoggerConfig':
        """从字典创建配置对象"""
        config_dict = dict(config_dict)
        if isinstance(config_dict.get('level'), str):
            config_dict['level'] = LogLevel(config_dict['level'].upper())

        if isinstance(config_dict.get('rotation'), dict):
            config_dict['rotation'] = RotationConfig(**config_dict['rotation'])

        return cls(**config_dict)

    def get_service_dir(self) -> Path:
        """获取当前服务的日志目录"""
        if self.service_name and self.service_port:
            service_dir = f"{self.service_name}_{self.service_port}"
        else:
            service_dir = "default"
        return Path(self.log_dir) / service_dir

    def get_log_file_path(self, logger_type: str) -> str:
        """获取日志文件路径"""
        filename = f"{logger_type}_{{time:YYYY-MM-DD}}.log"
        return str(self.get_service_dir() / filename)

    def get_loguru_config(self, logger_type: str = "general") -> Dict[str, Any]:
        """获取loguru文件处理器的配置字典"""
        config = {
            "sink": self.get_log_file_path(logger_type),
            "level": self.level.value,
            "format": self.format_string,
            "rotation": self.rotation.size,
            "retention": self.rotation.retention,
            "compression": self.rotation.compression,
            "enqueue": self.enable_async,
            "backtrace": self.backtrace,
            "diagnose": self.diagnose,
        }

        if self.enable_json_format:
            config["serialize"] = True

        return config

    def create_log_directory(self) -> None:
        """创建日志目录"""
        self.get_service_dir().mkdir(parents=True, exist_ok=True)
