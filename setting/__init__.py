"""
配置模块

提供分层配置加载（默认值 → 配置文件 → 环境变量）和集群成员配置。
"""

from .config import BaseConfig, PydanticConfig, ConfigError
from .cluster_config import (
    ClusterConfig, ClusterSettings, RouterSettings, WorkerSettings,
    DatabaseSettings, CacheSettings, load_cluster_config
)

__all__ = [
    'BaseConfig',
    'PydanticConfig',
    'ConfigError',
    'ClusterConfig',
    'ClusterSettings',
    'RouterSettings',
    'WorkerSettings',
    'DatabaseSettings',
    'CacheSettings',
    'load_cluster_config',
]
