"""
common/server 模块

集群成员的监管层：启动信息快照、Router/Worker句柄接口、
Server生命周期管理以及同级进程启动。

模块结构：
- startup_info.py: 启动信息快照
- router.py / worker.py: 外部协作组件的句柄接口
- server.py: Server初始化、启动、销毁
- process_launcher.py: 启动参数序列化和跨平台进程创建
- exceptions.py: 错误分类
"""

from .exceptions import (
    ServerErrorCode, ServerError, AllocationError, ConfigCaptureError,
    SubsystemInitError, HandleCreationError, StartError, LaunchError
)
from .startup_info import (
    ServerRole, MySQLStartupInfo, RedisStartupInfo, RouterStartupInfo,
    WorkerStartupInfo, ServerStartupInfo
)
from .router import Router, RouterFactory, load_factory
from .worker import Worker, WorkerFactory
from .server import Server
from .process_launcher import (
    LAUNCH_TOKEN_FIELDS, EXEC_FAILURE_EXIT_CODE, LaunchDescriptor, LaunchResult, ProcessBackend,
    ForkExecBackend, NativeProcessBackend, ProcessLauncher,
    build_launch_descriptor, parse_launch_arguments, default_backend
)

__all__ = [
    'ServerErrorCode', 'ServerError', 'AllocationError', 'ConfigCaptureError',
    'SubsystemInitError', 'HandleCreationError', 'StartError', 'LaunchError',
    'ServerRole', 'MySQLStartupInfo', 'RedisStartupInfo', 'RouterStartupInfo',
    'WorkerStartupInfo', 'ServerStartupInfo',
    'Router', 'RouterFactory', 'load_factory',
    'Worker', 'WorkerFactory',
    'Server',
    'LAUNCH_TOKEN_FIELDS', 'EXEC_FAILURE_EXIT_CODE', 'LaunchDescriptor', 'LaunchResult', 'ProcessBackend',
    'ForkExecBackend', 'NativeProcessBackend', 'ProcessLauncher',
    'build_launch_descriptor', 'parse_launch_arguments', 'default_backend',
]
