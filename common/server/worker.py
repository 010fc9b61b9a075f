"""
Worker接口模块

Worker是处理数据包的工作单元（线程内实例），具体处理逻辑由实现模块提供。
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from .startup_info import WorkerStartupInfo


class Worker(ABC):
    """Worker句柄接口"""

    @abstractmethod
    def start(self) -> bool:
        """
        启动Worker

        Returns:
            bool: 是否启动成功
        """

    @abstractmethod
    def destroy(self) -> None:
        """销毁Worker，无论是否已经启动"""


WorkerFactory = Callable[[WorkerStartupInfo], Optional[Worker]]
