"""
集群成员配置

该模块定义集群成员的配置模型（Router、Worker模板、数据库、缓存、
角色、输出路径等），并把验证后的配置转换为Server所需的启动信息。

配置文件示例（YAML）：
```yaml
server_role: ZONE
output: /var/log/cluster
executable: ./zone_server
router:
  router_id: 1
  ip: 127.0.0.1
  port: 2004
  workers_count: 4
worker:
  global_server_ip: 127.0.0.1
  global_server_port: 9002
  database: {hostname: localhost, user: root, password: secret, database: cluster}
  cache: {hostname: localhost, port: 6379}
router_factory: my_cluster.router:create_router
worker_factory: my_cluster.worker:create_worker
```
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from common.logger import LogLevel
from common.server.startup_info import (
    MySQLStartupInfo, RedisStartupInfo, RouterStartupInfo, ServerRole,
    ServerStartupInfo, WorkerStartupInfo
)
from .config import PydanticConfig


class SettingsModel(BaseModel):
    """配置模型基类"""
    # 环境变量中的纯数字密码、密钥会被转换为int，字符串字段需要还原
    model_config = ConfigDict(coerce_numbers_to_str=True)


class RouterSettings(SettingsModel):
    """Router配置"""
    router_id: int = 1
    ip: str = "127.0.0.1"
    port: int = Field(default=2004, ge=1, le=65535)
    workers_count: int = Field(default=1, ge=0)


class DatabaseSettings(SettingsModel):
    """数据库配置"""
    hostname: str = "localhost"
    user: str = "root"
    password: str = ""
    database: str = "cluster"


class CacheSettings(SettingsModel):
    """缓存配置"""
    hostname: str = "localhost"
    port: int = Field(default=6379, ge=1, le=65535)


class WorkerSettings(SettingsModel):
    """Worker配置模板，所有Worker共用"""
    global_server_ip: str = "127.0.0.1"
    global_server_port: int = Field(default=9002, ge=1, le=65535)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)


class ClusterSettings(SettingsModel):
    """集群成员配置"""
    server_role: ServerRole = ServerRole.ZONE
    output: str = "logs"
    executable: str = "zone_server"
    crypto_secret: str = ""
    log_level: str = "INFO"
    router_factory: Optional[str] = None
    worker_factory: Optional[str] = None
    router: RouterSettings = Field(default_factory=RouterSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)

    @field_validator('server_role', mode='before')
    @classmethod
    def _parse_role_name(cls, value: Any) -> Any:
        # 允许在配置文件中使用角色名
        if isinstance(value, str):
            if value.isdigit():
                return int(value)
            try:
                return ServerRole[value.upper()]
            except KeyError:
                raise ValueError(f"unknown server role '{value}'")
        return value

    @field_validator('log_level')
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LogLevel.__members__:
            raise ValueError(f"unknown log level '{value}'")
        return value


class ClusterConfig(PydanticConfig):
    """
    集群成员配置类

    环境变量前缀为 CLUSTER_，例如 CLUSTER_ROUTER__WORKERS_COUNT=8。
    """

    def __init__(self):
        super().__init__(ClusterSettings)

    @property
    def settings(self) -> ClusterSettings:
        return self.model

    def to_startup_info(self) -> ServerStartupInfo:
        """把配置转换为启动信息"""
        settings = self.settings
        router_info = RouterStartupInfo(
            router_id=settings.router.router_id,
            ip=settings.router.ip,
            port=settings.router.port,
            workers_count=settings.router.workers_count,
        )

        template = settings.worker
        workers_info = [
            WorkerStartupInfo(
                worker_id=worker_id,
                router_id=router_info.router_id,
                global_server_ip=template.global_server_ip,
                global_server_port=template.global_server_port,
                sql_info=MySQLStartupInfo(**template.database.model_dump()),
                redis_info=RedisStartupInfo(**template.cache.model_dump()),
                server_role=settings.server_role,
            )
            for worker_id in range(router_info.workers_count)
        ]

        return ServerStartupInfo.capture(
            settings.server_role, router_info, workers_info, settings.output)


def load_cluster_config(config_file: Optional[str] = None) -> ClusterConfig:
    """
    加载集群成员配置的便捷函数

    Args:
        config_file: 配置文件路径

    Returns:
        ClusterConfig: 已验证的配置
    """
    config = ClusterConfig()
    config.load(config_file)
    return config
