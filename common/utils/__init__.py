"""
common/utils 模块

进程级组件共用的小工具。
"""

from .singleton import SingletonMeta

__all__ = ['SingletonMeta']
