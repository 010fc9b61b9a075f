"""
游戏会话模块

GameSession 是每个客户端连接的会话聚合：兵营（大厅）会话和指挥官
（游戏内）会话总是一起创建、一起销毁，不存在只初始化了其中一个的状态。
"""

from typing import Optional

from common.logger import logger
from .barrack_session import BarrackSession
from .commander_session import CommanderInfo, CommanderSession
from .exceptions import SessionInitError


class GameSession:
    """
    游戏会话聚合

    由连接处理器在新连接时创建、断开时销毁。
    """

    def __init__(self):
        self.barrack_session = BarrackSession()
        self.commander_session = CommanderSession()
        self._alive = False

    @classmethod
    def create(cls, commander_info: Optional[CommanderInfo]) -> 'GameSession':
        """
        创建游戏会话

        Args:
            commander_info: 指挥官信息

        Returns:
            GameSession: 两个子会话都已初始化的会话

        Raises:
            SessionInitError: 任一子会话初始化失败，已初始化的部分会一并释放
        """
        session = cls()
        try:
            session.initialize(commander_info)
        except SessionInitError as e:
            session.destroy()
            logger.error(f"GameSession failed to initialize: {e.message}")
            raise
        except Exception as e:
            session.destroy()
            logger.error(f"GameSession failed to initialize: {e}")
            raise SessionInitError(f"GameSession failed to initialize: {e}", cause=e) from e
        return session

    def initialize(self, commander_info: Optional[CommanderInfo]) -> None:
        """依次初始化兵营会话和指挥官会话"""
        account_id = commander_info.account_id if commander_info is not None else 0
        self.barrack_session.init(account_id)
        self._alive = True
        self.commander_session.init(commander_info)

    def destroy(self) -> None:
        """销毁会话，子会话一并释放"""
        if not self._alive:
            return
        self.commander_session.release()
        self.barrack_session.release()
        self._alive = False

    @property
    def is_alive(self) -> bool:
        return self._alive

    def describe(self) -> str:
        """输出两个子会话的状态（仅用于诊断）"""
        header = f"==== GameSession {id(self):#x} ===="
        logger.debug(header)
        return "\n".join((
            header,
            self.barrack_session.describe(),
            self.commander_session.describe(),
        ))
