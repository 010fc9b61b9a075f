"""
启动信息模块

该模块定义集群成员的启动信息：Router配置、每个Worker的配置、
服务器角色和输出路径。

所有记录都是不可变的。ServerStartupInfo 是Server持有的私有快照，
通过 capture() 深拷贝调用方传入的配置构建，调用方之后替换自己列表中的
记录不会影响运行中的成员，持有快照的组件也无法修改其中的配置。
"""

import copy
from dataclasses import dataclass, field, asdict
from enum import IntEnum
from typing import Any, Dict, Sequence, Tuple

from .exceptions import ConfigCaptureError


class ServerRole(IntEnum):
    """服务器角色枚举，启动参数中以整数值传递"""
    GLOBAL = 1
    BARRACK = 2
    ZONE = 3
    SOCIAL = 4


@dataclass(frozen=True)
class MySQLStartupInfo:
    """数据库连接参数"""
    hostname: str = "localhost"
    user: str = "root"
    password: str = ""
    database: str = "cluster"


@dataclass(frozen=True)
class RedisStartupInfo:
    """缓存连接参数"""
    hostname: str = "localhost"
    port: int = 6379


@dataclass(frozen=True)
class RouterStartupInfo:
    """Router配置"""
    router_id: int
    ip: str
    port: int
    workers_count: int


@dataclass(frozen=True)
class WorkerStartupInfo:
    """单个Worker的配置"""
    worker_id: int
    router_id: int
    global_server_ip: str
    global_server_port: int
    sql_info: MySQLStartupInfo = field(default_factory=MySQLStartupInfo)
    redis_info: RedisStartupInfo = field(default_factory=RedisStartupInfo)
    server_role: ServerRole = ServerRole.ZONE


@dataclass(frozen=True)
class ServerStartupInfo:
    """
    集群成员启动信息快照

    Attributes:
        server_role: 服务器角色
        router_info: Router配置
        workers_info: 按配置顺序排列的Worker配置
        output: 运行输出（日志）路径
    """
    server_role: ServerRole
    router_info: RouterStartupInfo
    workers_info: Tuple[WorkerStartupInfo, ...]
    output: str

    @classmethod
    def capture(
        cls,
        server_role: ServerRole,
        router_info: RouterStartupInfo,
        workers_info: Sequence[WorkerStartupInfo],
        output: str
    ) -> 'ServerStartupInfo':
        """
        从调用方配置构建私有快照

        Args:
            server_role: 服务器角色
            router_info: Router配置
            workers_info: Worker配置序列，长度必须等于 router_info.workers_count
            output: 输出路径

        Returns:
            ServerStartupInfo: 深拷贝得到的快照

        Raises:
            ConfigCaptureError: 配置无法被捕获
        """
        try:
            role = ServerRole(server_role)
        except ValueError as e:
            raise ConfigCaptureError(f"Unknown server role: {server_role!r}", cause=e)

        if not isinstance(router_info, RouterStartupInfo):
            raise ConfigCaptureError(
                f"Router info must be a RouterStartupInfo, got {type(router_info).__name__}")

        if isinstance(workers_info, (str, bytes)) or not isinstance(workers_info, Sequence):
            raise ConfigCaptureError(
                f"Workers info must be a sequence, got {type(workers_info).__name__}")

        if len(workers_info) != router_info.workers_count:
            raise ConfigCaptureError(
                "Workers info count does not match the router workers count",
                details={
                    'workers_info_count': len(workers_info),
                    'workers_count': router_info.workers_count,
                },
            )

        for index, worker_info in enumerate(workers_info):
            if not isinstance(worker_info, WorkerStartupInfo):
                raise ConfigCaptureError(
                    f"Worker info {index} must be a WorkerStartupInfo, "
                    f"got {type(worker_info).__name__}",
                    details={'index': index},
                )

        try:
            router_copy = copy.deepcopy(router_info)
            workers_copy = tuple(copy.deepcopy(list(workers_info)))
        except MemoryError as e:
            raise ConfigCaptureError("Out of memory while copying startup info", cause=e)
        except (TypeError, copy.Error) as e:
            # 配置中含有无法复制的对象（锁、文件句柄等）
            raise ConfigCaptureError(f"Startup info cannot be copied: {e}", cause=e)

        return cls(
            server_role=role,
            router_info=router_copy,
            workers_info=workers_copy,
            output=str(output),
        )

    @property
    def workers_count(self) -> int:
        """Worker数量"""
        return len(self.workers_info)

    def get_worker_info(self, index: int) -> WorkerStartupInfo:
        """
        获取指定索引的Worker配置

        Raises:
            ConfigCaptureError: 索引越界
        """
        if not 0 <= index < len(self.workers_info):
            raise ConfigCaptureError(
                f"Worker index {index} out of range",
                details={'index': index, 'workers_count': len(self.workers_info)},
            )
        return self.workers_info[index]

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典（密码已屏蔽），用于日志和诊断"""
        workers = []
        for worker_info in self.workers_info:
            data = asdict(worker_info)
            data['server_role'] = ServerRole(worker_info.server_role).name
            data['sql_info']['password'] = '***'
            workers.append(data)

        return {
            'server_role': self.server_role.name,
            'router_info': asdict(self.router_info),
            'workers_info': workers,
            'output': self.output,
        }
