"""
兵营会话模块

兵营（大厅）阶段的会话状态：角色选择和创建。
"""

from dataclasses import dataclass

from common.logger import logger


@dataclass
class BarrackSession:
    """兵营会话"""
    account_id: int = 0
    characters_created_count: int = 0
    active: bool = False

    def init(self, account_id: int = 0) -> None:
        """初始化兵营会话"""
        self.account_id = account_id
        self.characters_created_count = 0
        self.active = True

    def release(self) -> None:
        """释放兵营会话"""
        self.active = False
        self.characters_created_count = 0

    def describe(self) -> str:
        lines = [
            "==== BarrackSession ====",
            f"accountId = {self.account_id}",
            f"charactersCreatedCount = {self.characters_created_count}",
        ]
        text = "\n".join(lines)
        logger.debug(text)
        return text
