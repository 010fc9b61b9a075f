"""
服务启动器主程序模块

该模块提供集群成员的两个命令行入口：

- zone-server（member_main）：同级进程的可执行入口。位置参数的顺序与
  ProcessLauncher 生成的启动参数一致，解析后创建并启动Server，
  直到收到终止信号再销毁。
- zone-cluster（main）：
    run    根据配置文件启动一个集群成员
    spawn  根据配置文件启动若干个同级进程（发出即忘）

Router/Worker 的具体实现通过配置中的工厂导入路径指定
（router_factory / worker_factory，或环境变量 CLUSTER_ROUTER_FACTORY /
CLUSTER_WORKER_FACTORY）。
"""

import argparse
import signal
import sys
import threading
from typing import List, Optional, Sequence

from common.logger import logger, initialize_logging, set_global_log_level
from common.crypto import get_packet_crypto
from common.server import (
    LAUNCH_TOKEN_FIELDS, LaunchError, ProcessLauncher, Server, ServerError,
    ServerStartupInfo, build_launch_descriptor, load_factory, parse_launch_arguments
)
from setting import ClusterConfig, ConfigError, load_cluster_config


class ServerLauncher:
    """
    集群成员启动器

    负责日志初始化、Server的创建/启动/销毁以及同级进程的批量启动。
    """

    def __init__(self, config: ClusterConfig):
        """
        初始化启动器

        Args:
            config: 已加载的集群成员配置
        """
        self.config = config
        self.server: Optional[Server] = None
        self.shutdown_event = threading.Event()
        self.process_launcher = ProcessLauncher()

    def _setup_signal_handlers(self) -> None:
        """设置信号处理器"""
        def signal_handler(signum, frame):
            logger.info(f"收到信号 {signum}，开始关闭")
            self.shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def run_member(self, info: ServerStartupInfo, wait: bool = True) -> int:
        """
        运行一个集群成员

        Args:
            info: 启动信息
            wait: 是否阻塞等待终止信号

        Returns:
            int: 退出码
        """
        settings = self.config.settings
        initialize_logging(
            service_type=info.server_role.name.lower(),
            port=info.router_info.port,
            log_dir=info.output,
        )
        set_global_log_level(settings.log_level)

        if not settings.router_factory or not settings.worker_factory:
            logger.error("router_factory and worker_factory must be configured")
            return 1

        if settings.crypto_secret:
            get_packet_crypto().set_secret(settings.crypto_secret.encode('utf-8'))

        try:
            router_factory = load_factory(settings.router_factory)
            worker_factory = load_factory(settings.worker_factory)
            self.server = Server.create(info, router_factory, worker_factory)
        except ServerError as e:
            logger.error(f"Cannot create the server: {e}")
            return 1

        try:
            self.server.start()
        except ServerError as e:
            logger.error(f"[routerId={self.server.get_router_id()}] Cannot start the server: {e}")
            self.server.destroy()
            return 1

        logger.info(f"[routerId={self.server.get_router_id()}] "
                    f"{info.server_role.name} server is running")

        if wait:
            self._setup_signal_handlers()
            self.shutdown_event.wait()
            self.shutdown()

        return 0

    def shutdown(self) -> None:
        """销毁Server"""
        if self.server is not None:
            self.server.destroy()
            logger.info("Server destroyed")
            self.server = None

    def spawn_members(self, executable: str, count: int = 1, worker_index: int = 0) -> int:
        """
        启动若干个同级进程

        某个进程启动失败不会影响其余进程的启动。

        Args:
            executable: 同级可执行文件
            count: 进程数量
            worker_index: 提供数据库/缓存参数的Worker索引

        Returns:
            int: 全部启动成功返回0，否则返回1
        """
        try:
            info = self.config.to_startup_info()
            descriptor = build_launch_descriptor(info, executable, worker_index)
        except ServerError as e:
            logger.error(f"Cannot build launch arguments: {e}")
            return 1

        failures = 0
        for _ in range(count):
            try:
                result = self.process_launcher.launch(descriptor)
            except LaunchError:
                failures += 1
                continue
            print(f"{descriptor.executable} started (PID: {result.pid})")

        if failures:
            logger.error(f"{failures}/{count} processes failed to launch")
            return 1
        return 0


def parse_member_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    解析同级进程入口的命令行参数

    Returns:
        argparse.Namespace: 解析后的参数
    """
    parser = argparse.ArgumentParser(
        description="Zone cluster member - 按启动参数运行一个集群成员",
    )
    for name in LAUNCH_TOKEN_FIELDS:
        parser.add_argument(name)
    parser.add_argument('--config', '-c', help='配置文件路径（工厂、日志级别、加密密钥）')
    return parser.parse_args(argv)


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    解析集群命令行参数

    Returns:
        argparse.Namespace: 解析后的参数
    """
    parser = argparse.ArgumentParser(
        description="Zone cluster launcher - 集群成员启动器",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest='action', required=True)

    run_parser = subparsers.add_parser('run', help='根据配置文件启动一个集群成员')
    run_parser.add_argument('--config', '-c', help='配置文件路径')

    spawn_parser = subparsers.add_parser('spawn', help='启动同级进程')
    spawn_parser.add_argument('--config', '-c', help='配置文件路径')
    spawn_parser.add_argument('--executable', '-e', help='同级可执行文件，默认取配置中的 executable')
    spawn_parser.add_argument('--count', '-n', type=int, default=1, help='启动的进程数量')
    spawn_parser.add_argument('--worker-index', type=int, default=0,
                              help='提供数据库/缓存参数的Worker索引')

    return parser.parse_args(argv)


def member_main(argv: Optional[Sequence[str]] = None) -> int:
    """同级进程入口"""
    args = parse_member_arguments(argv)
    tokens: List[str] = [getattr(args, name) for name in LAUNCH_TOKEN_FIELDS]

    try:
        config = load_cluster_config(args.config)
        info = parse_launch_arguments(tokens)
    except (ConfigError, ServerError) as e:
        logger.error(f"Invalid startup arguments: {e}")
        return 1

    return ServerLauncher(config).run_member(info)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """集群命令行入口"""
    args = parse_arguments(argv)

    try:
        config = load_cluster_config(args.config)
    except ConfigError as e:
        logger.error(f"Cannot load configuration: {e}")
        return 1

    launcher = ServerLauncher(config)

    if args.action == 'run':
        try:
            info = config.to_startup_info()
        except ServerError as e:
            logger.error(f"Invalid configuration: {e}")
            return 1
        return launcher.run_member(info)

    executable = args.executable or config.settings.executable
    return launcher.spawn_members(executable, args.count, args.worker_index)


if __name__ == "__main__":
    sys.exit(main())
