"""
集群服务器异常模块

该模块定义了Server生命周期和进程启动中使用的异常类。
每个异常都记录失败的阶段、组件和索引，便于日志定位。
"""

from typing import Optional, Dict, Any
from enum import IntEnum


class ServerErrorCode(IntEnum):
    """服务器错误码枚举"""
    ALLOCATION_FAILURE = 2001
    CONFIG_CAPTURE_FAILURE = 2101
    SUBSYSTEM_INIT_FAILURE = 2201
    HANDLE_CREATION_FAILURE = 2301
    START_FAILURE = 2401
    LAUNCH_FAILURE = 2501


class ServerError(Exception):
    """服务器基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ServerErrorCode,
        stage: str,
        component: Optional[str] = None,
        index: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None
    ):
        """
        初始化服务器异常

        Args:
            message: 错误消息
            error_code: 错误码
            stage: 失败阶段（capture, crypto, router, workers, start, launch）
            component: 失败组件（router, worker, crypto...）
            index: 失败的Worker索引
            details: 错误详情
            cause: 原始异常
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.stage = stage
        self.component = component
        self.index = index
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        where = self.component or self.stage
        if self.index is not None:
            where = f"{where}[{self.index}]"
        return f"[{where}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        result = {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'stage': self.stage,
            'component': self.component,
            'index': self.index,
            'details': self.details,
        }

        if self.cause:
            result['cause'] = {
                'type': type(self.cause).__name__,
                'message': str(self.cause),
            }

        return result


class AllocationError(ServerError):
    """内存不足导致的创建失败"""

    def __init__(self, message: str, stage: str, component: Optional[str] = None,
                 index: Optional[int] = None, cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            error_code=ServerErrorCode.ALLOCATION_FAILURE,
            stage=stage,
            component=component,
            index=index,
            cause=cause,
        )


class ConfigCaptureError(ServerError):
    """启动信息快照无法构建"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            error_code=ServerErrorCode.CONFIG_CAPTURE_FAILURE,
            stage="capture",
            component="startup_info",
            details=details,
            cause=cause,
        )


class SubsystemInitError(ServerError):
    """一次性子系统（加密模块）初始化失败"""

    def __init__(self, message: str, component: str = "crypto",
                 cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            error_code=ServerErrorCode.SUBSYSTEM_INIT_FAILURE,
            stage="crypto",
            component=component,
            cause=cause,
        )


class HandleCreationError(ServerError):
    """Router或指定索引的Worker创建失败"""

    def __init__(self, message: str, component: str, index: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            error_code=ServerErrorCode.HANDLE_CREATION_FAILURE,
            stage="router" if component == "router" else "workers",
            component=component,
            index=index,
            details=details,
            cause=cause,
        )


class StartError(ServerError):
    """Router或指定索引的Worker启动失败"""

    def __init__(self, message: str, component: str, index: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            error_code=ServerErrorCode.START_FAILURE,
            stage="start",
            component=component,
            index=index,
            details=details,
            cause=cause,
        )


class LaunchError(ServerError):
    """子进程创建失败"""

    def __init__(self, message: str, executable: str, reason: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        details = {'executable': executable}
        if reason:
            details['reason'] = reason

        super().__init__(
            message=message,
            error_code=ServerErrorCode.LAUNCH_FAILURE,
            stage="launch",
            component="process_launcher",
            details=details,
            cause=cause,
        )
        self.executable = executable
        self.reason = reason
