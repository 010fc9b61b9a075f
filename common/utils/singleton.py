"""
单例模式实现

该模块提供线程安全的单例元类，供日志工厂、加密模块等进程级组件使用。
"""

import threading
from typing import Any, Dict, Type


class SingletonMeta(type):
    """
    线程安全的单例元类

    同一个类在进程内只会被实例化一次，后续调用直接返回已有实例。
    """

    _instances: Dict[Type, Any] = {}
    _lock = threading.Lock()

    def __call__(cls, *args, **kwargs):
        """
        创建或返回单例实例

        Args:
            *args: 位置参数
            **kwargs: 关键字参数

        Returns:
            Any: 单例实例
        """
        if cls not in cls._instances:
            with cls._lock:
                # 双重检查锁定
                if cls not in cls._instances:
                    instance = super().__call__(*args, **kwargs)
                    cls._instances[cls] = instance
        return cls._instances[cls]

    @classmethod
    def clear_instances(mcs) -> None:
        """清空所有单例实例（主要用于测试）"""
        with mcs._lock:
            mcs._instances.clear()

    @classmethod
    def remove_instance(mcs, cls: Type) -> None:
        """
        移除指定类的单例实例

        Args:
            cls: 要移除的类
        """
        with mcs._lock:
            mcs._instances.pop(cls, None)
