"""
Router接口模块

Router是集群成员的分发前端，按负载均衡算法把数据包转发给Worker。
分发算法由具体实现模块提供，Server只负责创建、启动、查询标识和销毁。
"""

import importlib
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from .exceptions import HandleCreationError
from .startup_info import RouterStartupInfo


class Router(ABC):
    """Router句柄接口"""

    @abstractmethod
    def start(self) -> bool:
        """
        启动Router

        Returns:
            bool: 是否启动成功
        """

    @abstractmethod
    def get_id(self) -> int:
        """获取Router标识"""

    @abstractmethod
    def destroy(self) -> None:
        """销毁Router，释放其持有的资源"""


RouterFactory = Callable[[RouterStartupInfo], Optional[Router]]


def load_factory(path: str) -> Callable[..., Any]:
    """
    按导入路径加载Router或Worker工厂

    Args:
        path: "package.module:attribute" 格式的导入路径

    Returns:
        Callable: 工厂可调用对象

    Raises:
        HandleCreationError: 无法导入或目标不可调用
    """
    module_name, _, attr_name = path.partition(':')
    if not module_name or not attr_name:
        raise HandleCreationError(
            f"Invalid factory path '{path}', expected 'module:attribute'",
            component="factory",
        )

    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr_name)
    except (ImportError, AttributeError) as e:
        raise HandleCreationError(
            f"Cannot load factory '{path}': {e}", component="factory", cause=e)

    if not callable(factory):
        raise HandleCreationError(f"Factory '{path}' is not callable", component="factory")

    return factory
