"""
集群服务器模块

Server是集群成员的协调组件：持有启动信息快照、一个Router和N个Worker，
负责按固定顺序初始化、启动和销毁它们。

初始化顺序（任何一步失败都会立即中止，并由 create() 完整销毁已创建部分）：
1. 捕获启动信息快照
2. 初始化数据包加密模块
3. 创建Router
4. 按配置顺序创建Worker

启动顺序：先按配置顺序启动所有Worker，再启动Router，
保证Router接收流量时已有Worker可以处理分发的数据包。

使用示例：
```python
server = Server.create(info, router_factory=create_router, worker_factory=create_worker)
try:
    server.start()
    ...
finally:
    server.destroy()
```
"""

from typing import List, Optional, Protocol, Tuple

from common.crypto import get_packet_crypto
from common.logger import logger
from .exceptions import (
    AllocationError, ConfigCaptureError, ServerError, SubsystemInitError,
    HandleCreationError, StartError
)
from .router import Router, RouterFactory
from .startup_info import ServerStartupInfo
from .worker import Worker, WorkerFactory


class CryptoModule(Protocol):
    """Server依赖的加密模块接口"""

    def init_once(self) -> bool:
        ...


class Server:
    """
    集群服务器

    Server独占其快照、Router和Worker，任何失败路径都不会泄漏它们。
    同一实例的 initialize/start/destroy 不能并发调用。
    """

    def __init__(self, router_factory: RouterFactory, worker_factory: WorkerFactory,
                 crypto: Optional[CryptoModule] = None):
        """
        初始化Server（不创建任何句柄，见 initialize()）

        Args:
            router_factory: Router工厂
            worker_factory: Worker工厂
            crypto: 加密模块，默认使用进程级数据包加密上下文
        """
        self._router_factory = router_factory
        self._worker_factory = worker_factory
        self._crypto = crypto if crypto is not None else get_packet_crypto()

        self._info: Optional[ServerStartupInfo] = None
        self._router: Optional[Router] = None
        self._workers: List[Optional[Worker]] = []
        self._destroyed = False

    @classmethod
    def create(cls, info: ServerStartupInfo, router_factory: RouterFactory,
               worker_factory: WorkerFactory,
               crypto: Optional[CryptoModule] = None) -> 'Server':
        """
        创建并初始化Server

        Args:
            info: 调用方的启动信息，Server会保存一份私有拷贝
            router_factory: Router工厂
            worker_factory: Worker工厂
            crypto: 加密模块

        Returns:
            Server: 完整初始化的Server

        Raises:
            ServerError: 初始化失败，已创建的部分在抛出前全部销毁
        """
        server = cls(router_factory, worker_factory, crypto)
        try:
            server.initialize(info)
        except ServerError:
            server.destroy()
            logger.error("Server failed to initialize.")
            raise
        except MemoryError as e:
            server.destroy()
            logger.error("Server failed to initialize: out of memory.")
            raise AllocationError("Out of memory during initialization",
                                  stage="initialize", cause=e)
        return server

    def initialize(self, info: ServerStartupInfo) -> None:
        """
        按顺序初始化快照、加密模块、Router和Worker

        Raises:
            ConfigCaptureError: 无法捕获启动信息
            SubsystemInitError: 加密模块初始化失败
            HandleCreationError: Router或某个Worker创建失败
        """
        # 保存私有拷贝
        try:
            fields = (info.server_role, info.router_info, info.workers_info, info.output)
        except AttributeError as e:
            logger.error(f"Cannot init the ServerStartupInfo: {e}")
            raise ConfigCaptureError("Startup info is missing required fields", cause=e)

        try:
            self._info = ServerStartupInfo.capture(*fields)
        except ServerError as e:
            logger.error(f"Cannot init the ServerStartupInfo: {e}")
            raise

        router_id = self._info.router_info.router_id
        role = self._info.server_role.name

        # 收发数据包的组件启动之前必须完成加密模块初始化
        try:
            crypto_ready = self._crypto.init_once()
        except Exception as e:
            logger.error(f"[routerId={router_id}][role={role}] Cannot initialize crypto module: {e}")
            raise SubsystemInitError("Crypto module raised during initialization", cause=e)
        if not crypto_ready:
            logger.error(f"[routerId={router_id}][role={role}] Cannot initialize crypto module.")
            raise SubsystemInitError("Crypto module failed to initialize")

        self._router = self._create_router()
        self._create_workers()

        logger.info(
            f"[routerId={router_id}][role={role}] Server initialized with "
            f"{len(self._workers)} workers"
        )

    def _create_router(self) -> Router:
        router_info = self._info.router_info
        try:
            router = self._router_factory(router_info)
        except MemoryError as e:
            logger.error(f"[routerId={router_info.router_id}] Cannot allocate a new Router.")
            raise AllocationError("Out of memory while creating the router",
                                  stage="router", component="router", cause=e)
        except Exception as e:
            logger.error(f"[routerId={router_info.router_id}] Cannot allocate a new Router: {e}")
            raise HandleCreationError("Router creation raised", component="router", cause=e)

        if router is None:
            logger.error(f"[routerId={router_info.router_id}] Cannot allocate a new Router.")
            raise HandleCreationError("Router factory returned no router", component="router")

        return router

    def _create_workers(self) -> None:
        router_id = self._info.router_info.router_id

        # 一次性分配固定长度的槽位，索引在Server生命周期内保持不变
        try:
            self._workers = [None] * self._info.router_info.workers_count
        except MemoryError as e:
            logger.error(f"[routerId={router_id}] Cannot allocate enough Workers.")
            raise AllocationError("Out of memory while allocating workers",
                                  stage="workers", component="worker", cause=e)

        for worker_id, worker_info in enumerate(self._info.workers_info):
            try:
                worker = self._worker_factory(worker_info)
            except MemoryError as e:
                logger.error(f"[routerId={router_id}][WorkerId={worker_id}] Cannot allocate a new worker")
                raise AllocationError("Out of memory while creating a worker",
                                      stage="workers", component="worker",
                                      index=worker_id, cause=e)
            except Exception as e:
                logger.error(f"[routerId={router_id}][WorkerId={worker_id}] Cannot allocate a new worker: {e}")
                raise HandleCreationError("Worker creation raised", component="worker",
                                          index=worker_id, cause=e)

            if worker is None:
                logger.error(f"[routerId={router_id}][WorkerId={worker_id}] Cannot allocate a new worker")
                raise HandleCreationError("Worker factory returned no worker",
                                          component="worker", index=worker_id)

            self._workers[worker_id] = worker

    def start(self) -> None:
        """
        启动所有Worker，然后启动Router

        任何一个Worker启动失败都会立即中止，后续Worker和Router不会被启动。

        Raises:
            StartError: Server未初始化、已销毁，或某个组件启动失败
        """
        if self._destroyed or self._info is None or self._router is None:
            raise StartError("Server is not initialized", component="server")

        router_id = self._router.get_id()

        for worker_id, worker in enumerate(self._workers):
            try:
                started = worker.start()
            except Exception as e:
                logger.error(f"[routerId={router_id}][WorkerId={worker_id}] Cannot start the Worker: {e}")
                raise StartError("Worker start raised", component="worker",
                                 index=worker_id, cause=e)
            if not started:
                logger.error(f"[routerId={router_id}][WorkerId={worker_id}] Cannot start the Worker")
                raise StartError("Worker failed to start", component="worker", index=worker_id)

        try:
            started = self._router.start()
        except Exception as e:
            logger.error(f"[routerId={router_id}] Cannot start the router: {e}")
            raise StartError("Router start raised", component="router", cause=e)
        if not started:
            logger.error(f"[routerId={router_id}] Cannot start the router.")
            raise StartError("Router failed to start", component="router")

        logger.info(f"[routerId={router_id}] Server started with {len(self._workers)} workers")

    def get_router_id(self) -> int:
        """获取配置的Router标识"""
        if self._info is None:
            raise StartError("Server is not initialized", component="server")
        return self._info.router_info.router_id

    def destroy(self) -> None:
        """
        销毁Server

        依次销毁所有已创建的Worker（无论是否启动）、Router，最后释放快照。
        可重复调用，也可用于只初始化了一部分的Server。
        """
        if self._destroyed:
            return
        self._destroyed = True

        for worker_id, worker in enumerate(self._workers):
            if worker is None:
                continue
            try:
                worker.destroy()
            except Exception as e:
                logger.error(f"[WorkerId={worker_id}] Cannot destroy the Worker: {e}")
        self._workers = []

        if self._router is not None:
            try:
                self._router.destroy()
            except Exception as e:
                logger.error(f"Cannot destroy the Router: {e}")
            self._router = None

        self._info = None

    @property
    def info(self) -> Optional[ServerStartupInfo]:
        """启动信息快照"""
        return self._info

    @property
    def router(self) -> Optional[Router]:
        return self._router

    @property
    def workers(self) -> Tuple[Optional[Worker], ...]:
        """Worker句柄（按配置顺序）"""
        return tuple(self._workers)

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def __enter__(self) -> 'Server':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.destroy()
        return False
