"""
server_launcher 模块

集群成员的命令行入口。

使用示例：
    # 按启动参数运行一个集群成员（同级进程入口）
    zone-server 1 127.0.0.1 2004 4 127.0.0.1 9002 localhost root secret cluster localhost 6379 3 logs

    # 根据配置文件运行一个集群成员
    python -m server_launcher run --config cluster.yml

    # 启动两个同级进程
    python -m server_launcher spawn --config cluster.yml --executable ./zone_server --count 2
"""

from .launcher import ServerLauncher, main, member_main

__all__ = [
    'ServerLauncher',
    'main',
    'member_main',
]
