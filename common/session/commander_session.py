"""
指挥官会话模块

游戏内阶段的会话状态，保存当前指挥官信息的私有拷贝。
"""

import copy
from dataclasses import dataclass
from typing import Optional

from common.logger import logger
from .exceptions import SessionInitError


@dataclass
class CommanderInfo:
    """指挥官信息"""
    commander_id: int
    account_id: int
    family_name: str
    commander_name: str
    job_id: int = 0
    level: int = 1
    map_id: int = 0
    pos_x: float = 0.0
    pos_y: float = 0.0
    pos_z: float = 0.0


class CommanderSession:
    """指挥官会话"""

    def __init__(self):
        self.commander: Optional[CommanderInfo] = None
        self.current_map_id: int = 0

    def init(self, commander_info: Optional[CommanderInfo]) -> None:
        """
        初始化指挥官会话

        Args:
            commander_info: 指挥官信息

        Raises:
            SessionInitError: 指挥官信息缺失或无效
        """
        if commander_info is None:
            raise SessionInitError("Commander info is required", sub_session="commander")
        commander_id = commander_info.commander_id
        if not isinstance(commander_id, int) or isinstance(commander_id, bool):
            raise SessionInitError(
                f"Commander id must be an integer, got {type(commander_id).__name__}",
                sub_session="commander",
            )
        if commander_id <= 0:
            raise SessionInitError(
                f"Invalid commander id {commander_info.commander_id}",
                sub_session="commander",
            )

        self.commander = copy.deepcopy(commander_info)
        self.current_map_id = commander_info.map_id

    def release(self) -> None:
        """释放指挥官会话"""
        self.commander = None
        self.current_map_id = 0

    @property
    def is_initialized(self) -> bool:
        return self.commander is not None

    def describe(self) -> str:
        if self.commander is None:
            text = "==== CommanderSession (empty) ===="
        else:
            commander = self.commander
            lines = [
                "==== CommanderSession ====",
                f"commanderId = {commander.commander_id}",
                f"familyName = {commander.family_name}",
                f"commanderName = {commander.commander_name}",
                f"jobId = {commander.job_id}, level = {commander.level}",
                f"mapId = {self.current_map_id}, "
                f"pos = ({commander.pos_x}, {commander.pos_y}, {commander.pos_z})",
            ]
            text = "\n".join(lines)
        logger.debug(text)
        return text
