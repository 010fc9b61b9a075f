"""
common/session 模块

每个客户端连接的会话聚合（GameSession），由兵营会话和指挥官会话组成。
"""

from .exceptions import SessionInitError
from .barrack_session import BarrackSession
from .commander_session import CommanderInfo, CommanderSession
from .game_session import GameSession

__all__ = [
    'SessionInitError',
    'BarrackSession',
    'CommanderInfo',
    'CommanderSession',
    'GameSession',
]
