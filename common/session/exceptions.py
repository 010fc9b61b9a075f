"""
会话异常模块
"""

from typing import Optional


class SessionInitError(Exception):
    """会话初始化失败"""

    def __init__(self, message: str, sub_session: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.sub_session = sub_session
        self.cause = cause
