"""
进程启动模块

该模块把启动信息序列化为固定顺序的启动参数，并以独立的操作系统进程
启动同级的集群成员可执行文件。被启动的进程使用同样的参数顺序解析配置
（见 parse_launch_arguments），然后独立执行自己的Server初始化流程。

参数顺序（可执行文件名之后）：
    router_id router_ip router_port workers_count
    global_server_ip global_server_port
    sql_hostname sql_user sql_password sql_database
    redis_hostname redis_port
    server_role output

进程创建按平台分为两类后端，子进程收到的参数完全一致：
- ForkExecBackend: POSIX 平台，fork 后在子进程中 execv
- NativeProcessBackend: Windows 平台，CreateProcess（subprocess.Popen）
"""

import os
import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Set, Tuple

import psutil

from common.logger import logger
from .exceptions import ConfigCaptureError, LaunchError
from .startup_info import (
    MySQLStartupInfo, RedisStartupInfo, RouterStartupInfo, ServerRole,
    ServerStartupInfo, WorkerStartupInfo
)

LAUNCH_TOKEN_FIELDS: Tuple[str, ...] = (
    'router_id',
    'router_ip',
    'router_port',
    'workers_count',
    'global_server_ip',
    'global_server_port',
    'sql_hostname',
    'sql_user',
    'sql_password',
    'sql_database',
    'redis_hostname',
    'redis_port',
    'server_role',
    'output',
)

_INTEGER_FIELDS = frozenset((
    'router_id', 'router_port', 'workers_count',
    'global_server_port', 'redis_port', 'server_role',
))

_PASSWORD_POSITION = LAUNCH_TOKEN_FIELDS.index('sql_password')

# execv 失败时子进程的退出码
EXEC_FAILURE_EXIT_CODE = 127


@dataclass(frozen=True)
class LaunchDescriptor:
    """
    进程启动描述

    Attributes:
        executable: 可执行文件名
        arguments: 按 LAUNCH_TOKEN_FIELDS 顺序排列的参数
    """
    executable: str
    arguments: Tuple[str, ...]

    @property
    def tokens(self) -> Tuple[str, ...]:
        """完整的参数向量（包含可执行文件名）"""
        return (self.executable,) + self.arguments

    @property
    def command_line(self) -> str:
        """空格拼接的命令行，含空白或为空的参数会被加引号"""
        return subprocess.list2cmdline(self.tokens)

    @property
    def masked_command_line(self) -> str:
        """屏蔽数据库密码的命令行，用于日志"""
        arguments = list(self.arguments)
        if len(arguments) > _PASSWORD_POSITION:
            arguments[_PASSWORD_POSITION] = '***'
        return subprocess.list2cmdline([self.executable] + arguments)

    def with_executable(self, executable: str) -> 'LaunchDescriptor':
        """返回替换了可执行文件名的描述"""
        return replace(self, executable=executable)


def build_launch_descriptor(info: ServerStartupInfo, executable_name: str,
                            worker_index: int = 0) -> LaunchDescriptor:
    """
    根据启动信息构建启动描述

    数据库、缓存和全局服务器地址取自指定的Worker配置（默认第一个），
    Router字段原样输出。

    Args:
        info: 启动信息快照
        executable_name: 可执行文件名
        worker_index: 提供数据库/缓存参数的Worker索引

    Returns:
        LaunchDescriptor: 启动描述

    Raises:
        ConfigCaptureError: Worker索引越界
    """
    router_info = info.router_info
    worker_info = info.get_worker_info(worker_index)
    sql_info = worker_info.sql_info
    redis_info = worker_info.redis_info

    arguments = (
        str(router_info.router_id),
        str(router_info.ip),
        str(router_info.port),
        str(router_info.workers_count),
        str(worker_info.global_server_ip),
        str(worker_info.global_server_port),
        str(sql_info.hostname),
        str(sql_info.user),
        str(sql_info.password),
        str(sql_info.database),
        str(redis_info.hostname),
        str(redis_info.port),
        str(int(info.server_role)),
        str(info.output),
    )

    return LaunchDescriptor(executable=executable_name, arguments=arguments)


def parse_launch_arguments(arguments: Sequence[str]) -> ServerStartupInfo:
    """
    解析启动参数（被启动进程一侧）

    所有Worker共享参数中的数据库、缓存和全局服务器配置，
    Worker标识依次为 0..workers_count-1。

    Args:
        arguments: 可执行文件名之后的位置参数

    Returns:
        ServerStartupInfo: 启动信息

    Raises:
        ConfigCaptureError: 参数数量或类型错误
    """
    if len(arguments) != len(LAUNCH_TOKEN_FIELDS):
        raise ConfigCaptureError(
            f"Expected {len(LAUNCH_TOKEN_FIELDS)} launch arguments, got {len(arguments)}",
            details={'expected': list(LAUNCH_TOKEN_FIELDS)},
        )

    values = dict(zip(LAUNCH_TOKEN_FIELDS, arguments))
    for name in _INTEGER_FIELDS:
        try:
            values[name] = int(values[name])
        except ValueError as e:
            raise ConfigCaptureError(
                f"Launch argument '{name}' must be an integer, got {values[name]!r}", cause=e)

    if values['workers_count'] < 0:
        raise ConfigCaptureError("Launch argument 'workers_count' must not be negative")

    try:
        server_role = ServerRole(values['server_role'])
    except ValueError as e:
        raise ConfigCaptureError(f"Unknown server role: {values['server_role']}", cause=e)

    router_info = RouterStartupInfo(
        router_id=values['router_id'],
        ip=values['router_ip'],
        port=values['router_port'],
        workers_count=values['workers_count'],
    )
    workers_info = [
        WorkerStartupInfo(
            worker_id=worker_id,
            router_id=router_info.router_id,
            global_server_ip=values['global_server_ip'],
            global_server_port=values['global_server_port'],
            sql_info=MySQLStartupInfo(
                hostname=values['sql_hostname'],
                user=values['sql_user'],
                password=values['sql_password'],
                database=values['sql_database'],
            ),
            redis_info=RedisStartupInfo(
                hostname=values['redis_hostname'],
                port=values['redis_port'],
            ),
            server_role=server_role,
        )
        for worker_id in range(router_info.workers_count)
    ]

    return ServerStartupInfo.capture(server_role, router_info, workers_info, values['output'])


class ProcessBackend(ABC):
    """进程创建后端接口"""

    def resolve_executable(self, name: str) -> str:
        """解析可执行文件名"""
        return name

    @abstractmethod
    def spawn(self, descriptor: LaunchDescriptor) -> int:
        """
        启动子进程，不等待其结束

        Returns:
            int: 子进程PID

        Raises:
            LaunchError: 进程创建失败
        """


class ForkExecBackend(ProcessBackend):
    """
    fork + execv 后端

    子进程 execv 失败时通过 close-on-exec 管道把错误写回父进程，
    然后以 EXEC_FAILURE_EXIT_CODE 退出；管道读到 EOF 说明 exec 成功。

    exec 成功的子进程不等待其结束，每次 spawn 前非阻塞地回收
    已经退出的子进程，避免长期运行的父进程积累僵尸进程。
    """

    def __init__(self):
        self._children: Set[int] = set()

    def spawn(self, descriptor: LaunchDescriptor) -> int:
        executable = self.resolve_executable(descriptor.executable)
        argv = [executable, *descriptor.arguments]
        self._check_argv(executable, argv)
        self.reap_children()

        # os.pipe() 创建的描述符默认不可继承，exec 成功后自动关闭
        read_fd, write_fd = os.pipe()
        try:
            pid = os.fork()
        except OSError as e:
            os.close(read_fd)
            os.close(write_fd)
            raise LaunchError(f"Cannot fork to launch {executable}",
                              executable=executable, reason=e.strerror, cause=e)

        if pid == 0:
            # 子进程：exec 失败后不能返回到Server代码
            try:
                os.close(read_fd)
                os.execv(executable, argv)
            except OSError as e:
                os.write(write_fd, str(e.errno or 0).encode('ascii'))
            except Exception as e:
                os.write(write_fd, f"{type(e).__name__}: {e}".encode('utf-8', errors='replace'))
            finally:
                os._exit(EXEC_FAILURE_EXIT_CODE)

        os.close(write_fd)
        try:
            data = self._read_all(read_fd)
        finally:
            os.close(read_fd)

        if not data:
            self._children.add(pid)
            return pid

        # exec 失败，回收子进程
        os.waitpid(pid, 0)
        try:
            error_number = int(data)
            reason = os.strerror(error_number)
        except ValueError:
            reason = data.decode('utf-8', errors='replace')
        raise LaunchError(f"Cannot launch executable {executable}",
                          executable=executable, reason=reason)

    def reap_children(self) -> int:
        """
        回收已经退出的子进程（不阻塞）

        Returns:
            int: 本次回收的子进程数量
        """
        reaped = 0
        for pid in list(self._children):
            try:
                finished, _ = os.waitpid(pid, os.WNOHANG)
            except ChildProcessError:
                # 已被其他调用方回收
                self._children.discard(pid)
                continue
            if finished:
                self._children.discard(pid)
                reaped += 1
        return reaped

    @property
    def children(self) -> Tuple[int, ...]:
        """尚未回收的子进程PID"""
        return tuple(sorted(self._children))

    @staticmethod
    def _check_argv(executable: str, argv: Sequence[str]) -> None:
        # execv 对这些参数抛出 ValueError，fork 之前在父进程中拒绝
        if not executable:
            raise LaunchError("Executable name is empty", executable=executable,
                              reason="empty executable name")
        for position, token in enumerate(argv):
            if '\x00' in token:
                raise LaunchError(f"Cannot launch executable {executable}",
                                  executable=executable,
                                  reason=f"argument {position} contains a NUL byte")

    @staticmethod
    def _read_all(fd: int) -> bytes:
        chunks = []
        while True:
            chunk = os.read(fd, 64)
            if not chunk:
                break
            chunks.append(chunk)
        return b''.join(chunks)


class NativeProcessBackend(ProcessBackend):
    """
    Windows 原生进程创建后端

    可执行文件名补全 .exe 后缀，命令行为空格拼接的单个字符串，
    子进程在新的控制台中运行。
    """

    EXECUTABLE_SUFFIX = ".exe"

    def resolve_executable(self, name: str) -> str:
        if name.lower().endswith(self.EXECUTABLE_SUFFIX):
            return name
        return name + self.EXECUTABLE_SUFFIX

    def spawn(self, descriptor: LaunchDescriptor) -> int:
        executable = self.resolve_executable(descriptor.executable)
        command_line = descriptor.with_executable(executable).command_line

        try:
            process = subprocess.Popen(
                command_line,
                executable=executable,
                creationflags=getattr(subprocess, 'CREATE_NEW_CONSOLE', 0),
            )
        except OSError as e:
            raise LaunchError(f"Cannot launch executable {executable}",
                              executable=executable, reason=self._format_error(e), cause=e)

        return process.pid

    @staticmethod
    def _format_error(error: OSError) -> str:
        winerror = getattr(error, 'winerror', None)
        message = error.strerror or str(error)
        if winerror:
            return f"[WinError {winerror}] {message}"
        return message


def default_backend() -> ProcessBackend:
    """按当前平台选择进程创建后端"""
    if os.name == 'nt':
        return NativeProcessBackend()
    return ForkExecBackend()


@dataclass
class LaunchResult:
    """进程启动结果"""
    pid: int
    descriptor: LaunchDescriptor
    started_at: float = field(default_factory=time.time)

    def is_alive(self) -> bool:
        """检查子进程是否仍在运行（僵尸进程视为已退出）"""
        try:
            return psutil.Process(self.pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False


class ProcessLauncher:
    """
    集群成员进程启动器

    启动是"发出即忘"的：不等待子进程，也不接管子进程的生命周期。
    启动失败只记录日志并抛出 LaunchError，不影响调用方自身的Server。
    """

    def __init__(self, backend: Optional[ProcessBackend] = None):
        """
        初始化启动器

        Args:
            backend: 进程创建后端，默认按平台选择
        """
        self.backend = backend or default_backend()

    def launch(self, descriptor: LaunchDescriptor) -> LaunchResult:
        """
        启动子进程

        Raises:
            LaunchError: 进程创建失败
        """
        logger.info(f"CommandLine : {descriptor.masked_command_line}")

        try:
            pid = self.backend.spawn(descriptor)
        except LaunchError as e:
            logger.error(f"Cannot launch Zone Server executable : {e.executable}.")
            if e.reason:
                logger.error(f"Error reason : {e.reason}")
            raise

        logger.info(f"Launched {descriptor.executable} (PID: {pid})")
        return LaunchResult(pid=pid, descriptor=descriptor)

    def create_process(self, info: ServerStartupInfo, executable_name: str,
                       worker_index: int = 0) -> LaunchResult:
        """根据启动信息构建启动描述并启动子进程"""
        return self.launch(build_launch_descriptor(info, executable_name, worker_index))
