"""
测试集群服务器模块

该模块包含 Server 初始化、启动和销毁顺序的单元测试。
"""

import dataclasses
import threading
from unittest import TestCase

from common.server import (
    AllocationError, ConfigCaptureError, HandleCreationError, RouterStartupInfo,
    Server, ServerErrorCode, ServerRole, ServerStartupInfo, StartError, SubsystemInitError,
    build_launch_descriptor, load_factory
)
from fakes import FakeCluster, FakeCrypto, make_startup_info, make_worker_info


class ServerTestCase(TestCase):
    """Server测试基类"""

    def setUp(self):
        self.cluster = FakeCluster()
        self.crypto = FakeCrypto(self.cluster)

    def create_server(self, info: ServerStartupInfo) -> Server:
        return Server.create(info, self.cluster.create_router, self.cluster.create_worker, self.crypto)


class TestServerCreate(ServerTestCase):
    """测试Server创建"""

    def test_create(self):
        """测试创建一个Router和N个Worker"""
        server = self.create_server(make_startup_info(workers_count=3))

        self.assertIs(server.router, self.cluster.router)
        self.assertEqual(len(server.workers), 3)
        self.assertEqual([w.info.worker_id for w in server.workers], [0, 1, 2])
        self.assertEqual(self.crypto.calls, 1)
        self.assertEqual(self.cluster.events, [
            ('crypto.init', 1),
            ('router.create', 7),
            ('worker.create', 0),
            ('worker.create', 1),
            ('worker.create', 2),
        ])

    def test_create_without_workers(self):
        """测试workers_count为0"""
        server = self.create_server(make_startup_info(workers_count=0))

        self.assertEqual(server.workers, ())
        self.assertIsNotNone(server.router)

    def test_snapshot_is_private(self):
        """测试Server保存的是私有拷贝"""
        info = make_startup_info(workers_count=2)
        server = self.create_server(info)

        self.assertIsNot(server.info, info)
        self.assertIsNot(server.info.router_info, info.router_info)
        self.assertIsNot(server.info.workers_info[0], info.workers_info[0])
        self.assertEqual(server.info, info)

    def test_snapshot_cannot_be_modified(self):
        """测试持有Server的组件无法修改运行中的配置"""
        server = self.create_server(make_startup_info(workers_count=2))

        with self.assertRaises(dataclasses.FrozenInstanceError):
            server.info.router_info.port = 1
        with self.assertRaises(dataclasses.FrozenInstanceError):
            server.info.workers_info[0].sql_info.password = "hijacked"

        descriptor = build_launch_descriptor(server.info, "zone_server")
        self.assertEqual(descriptor.arguments[2], "2004")
        self.assertEqual(descriptor.arguments[8], "secret")

    def test_workers_receive_their_own_config(self):
        """测试每个Worker收到对应索引的配置"""
        server = self.create_server(make_startup_info(workers_count=2))

        for index, worker in enumerate(server.workers):
            self.assertEqual(worker.info, server.info.workers_info[index])

    def test_get_router_id(self):
        """测试获取Router标识"""
        server = self.create_server(make_startup_info(router_id=42))
        self.assertEqual(server.get_router_id(), 42)

    def test_worker_creation_failure(self):
        """测试第二个Worker创建失败时已创建部分全部销毁"""
        self.cluster.worker_create_fails = {1}

        with self.assertRaises(HandleCreationError) as ctx:
            self.create_server(make_startup_info(workers_count=3))

        error = ctx.exception
        self.assertEqual(error.error_code, ServerErrorCode.HANDLE_CREATION_FAILURE)
        self.assertEqual(error.component, "worker")
        self.assertEqual(error.index, 1)
        self.assertEqual(error.stage, "workers")

        self.assertEqual(self.cluster.events_of('worker.create'), [0, 1])
        self.assertEqual(self.cluster.events_of('worker.destroy'), [0])
        self.assertEqual(self.cluster.events_of('router.destroy'), [7])
        self.assertTrue(self.cluster.workers[0].destroyed)
        self.assertTrue(self.cluster.router.destroyed)

    def test_worker_creation_raises(self):
        """测试Worker工厂抛出异常"""
        self.cluster.worker_create_raises = {0}

        with self.assertRaises(HandleCreationError) as ctx:
            self.create_server(make_startup_info(workers_count=2))

        self.assertEqual(ctx.exception.index, 0)
        self.assertIsInstance(ctx.exception.cause, RuntimeError)
        self.assertEqual(self.cluster.events_of('worker.create'), [0])
        self.assertEqual(self.cluster.events_of('router.destroy'), [7])

    def test_worker_out_of_memory(self):
        """测试Worker创建时内存不足"""
        self.cluster.worker_create_memory_error = {2}

        with self.assertRaises(AllocationError) as ctx:
            self.create_server(make_startup_info(workers_count=3))

        self.assertEqual(ctx.exception.index, 2)
        self.assertEqual(self.cluster.events_of('worker.destroy'), [0, 1])
        self.assertEqual(self.cluster.events_of('router.destroy'), [7])

    def test_router_creation_failure(self):
        """测试Router创建失败时不创建Worker"""
        self.cluster.router_create_fails = True

        with self.assertRaises(HandleCreationError) as ctx:
            self.create_server(make_startup_info(workers_count=2))

        self.assertEqual(ctx.exception.component, "router")
        self.assertEqual(ctx.exception.stage, "router")
        self.assertIsNone(ctx.exception.index)
        self.assertEqual(self.cluster.events_of('worker.create'), [])
        self.assertEqual(self.crypto.calls, 1)

    def test_crypto_failure(self):
        """测试加密模块初始化失败时不创建任何句柄"""
        self.crypto.result = False

        with self.assertRaises(SubsystemInitError) as ctx:
            self.create_server(make_startup_info(workers_count=2))

        self.assertEqual(ctx.exception.stage, "crypto")
        self.assertEqual(self.cluster.events, [('crypto.init', 1)])

    def test_capture_failure(self):
        """测试启动信息无法捕获时不初始化加密模块"""
        router_info = RouterStartupInfo(router_id=1, ip="127.0.0.1", port=2004, workers_count=1)
        info = ServerStartupInfo(
            server_role=ServerRole.ZONE,
            router_info=router_info,
            workers_info=(make_worker_info(0), make_worker_info(1)),
            output="out",
        )

        with self.assertRaises(ConfigCaptureError):
            self.create_server(info)

        self.assertEqual(self.crypto.calls, 0)
        self.assertEqual(self.cluster.events, [])

    def test_uncopyable_startup_info(self):
        """测试启动信息无法复制时的处理"""
        info = ServerStartupInfo(
            server_role=ServerRole.ZONE,
            router_info=RouterStartupInfo(router_id=1, ip="127.0.0.1", port=2004, workers_count=1),
            workers_info=(dataclasses.replace(make_worker_info(0), sql_info=threading.Lock()),),
            output="out",
        )

        with self.assertRaises(ConfigCaptureError) as ctx:
            self.create_server(info)

        self.assertIsInstance(ctx.exception.cause, TypeError)
        self.assertEqual(self.crypto.calls, 0)
        self.assertEqual(self.cluster.events, [])

    def test_missing_startup_info(self):
        """测试传入的启动信息缺少字段"""
        with self.assertRaises(ConfigCaptureError):
            self.create_server(None)


class TestServerStart(ServerTestCase):
    """测试Server启动"""

    def test_start_order(self):
        """测试先启动所有Worker，再启动Router"""
        server = self.create_server(make_startup_info(workers_count=3))
        self.cluster.events.clear()

        server.start()

        self.assertEqual(self.cluster.events, [
            ('worker.start', 0),
            ('worker.start', 1),
            ('worker.start', 2),
            ('router.start', 7),
        ])
        self.assertTrue(self.cluster.router.started)

    def test_start_without_workers(self):
        """测试没有Worker时只启动Router"""
        server = self.create_server(make_startup_info(workers_count=0))
        self.cluster.events.clear()

        server.start()

        self.assertEqual(self.cluster.events, [('router.start', 7)])

    def test_worker_start_failure(self):
        """测试Worker启动失败时后续Worker和Router都不启动"""
        self.cluster.worker_start_fails = {1}
        server = self.create_server(make_startup_info(workers_count=3))

        with self.assertRaises(StartError) as ctx:
            server.start()

        self.assertEqual(ctx.exception.component, "worker")
        self.assertEqual(ctx.exception.index, 1)
        self.assertEqual(self.cluster.events_of('worker.start'), [0, 1])
        self.assertEqual(self.cluster.events_of('router.start'), [])

        # 启动失败后仍可完整销毁
        server.destroy()
        self.assertEqual(self.cluster.events_of('worker.destroy'), [0, 1, 2])
        self.assertEqual(self.cluster.events_of('router.destroy'), [7])

    def test_worker_start_raises(self):
        """测试Worker启动时抛出异常"""
        self.cluster.worker_start_raises = {0}
        server = self.create_server(make_startup_info(workers_count=2))

        with self.assertRaises(StartError) as ctx:
            server.start()

        self.assertEqual(ctx.exception.index, 0)
        self.assertIsInstance(ctx.exception.cause, RuntimeError)
        self.assertEqual(self.cluster.events_of('router.start'), [])

    def test_router_start_failure(self):
        """测试Router启动失败"""
        self.cluster.router_start_fails = True
        server = self.create_server(make_startup_info(workers_count=2))

        with self.assertRaises(StartError) as ctx:
            server.start()

        self.assertEqual(ctx.exception.component, "router")
        self.assertEqual(self.cluster.events_of('worker.start'), [0, 1])

    def test_start_after_destroy(self):
        """测试销毁后不能启动"""
        server = self.create_server(make_startup_info(workers_count=1))
        server.destroy()

        with self.assertRaises(StartError):
            server.start()


class TestServerDestroy(ServerTestCase):
    """测试Server销毁"""

    def test_destroy_order(self):
        """测试先销毁Worker，再销毁Router，最后释放快照"""
        server = self.create_server(make_startup_info(workers_count=2))
        server.start()
        self.cluster.events.clear()

        server.destroy()

        self.assertEqual(self.cluster.events, [
            ('worker.destroy', 0),
            ('worker.destroy', 1),
            ('router.destroy', 7),
        ])
        self.assertTrue(server.is_destroyed)
        self.assertIsNone(server.info)
        self.assertIsNone(server.router)
        self.assertEqual(server.workers, ())

    def test_destroy_is_idempotent(self):
        """测试重复销毁不会重复释放"""
        server = self.create_server(make_startup_info(workers_count=2))

        server.destroy()
        server.destroy()

        self.assertEqual(self.cluster.events_of('worker.destroy'), [0, 1])
        self.assertEqual(self.cluster.events_of('router.destroy'), [7])

    def test_destroy_continues_after_worker_error(self):
        """测试某个Worker销毁失败不影响其余部分"""
        self.cluster.worker_destroy_raises = {0}
        server = self.create_server(make_startup_info(workers_count=2))

        server.destroy()

        self.assertEqual(self.cluster.events_of('worker.destroy'), [0, 1])
        self.assertEqual(self.cluster.events_of('router.destroy'), [7])

    def test_destroy_uninitialized(self):
        """测试销毁未初始化的Server"""
        server = Server(self.cluster.create_router, self.cluster.create_worker, self.crypto)
        server.destroy()

        self.assertTrue(server.is_destroyed)
        self.assertEqual(self.cluster.events, [])

    def test_context_manager(self):
        """测试上下文管理器退出时销毁"""
        with self.create_server(make_startup_info(workers_count=1)) as server:
            server.start()

        self.assertTrue(server.is_destroyed)
        self.assertEqual(self.cluster.events_of('router.destroy'), [7])

    def test_error_to_dict(self):
        """测试异常字典输出"""
        self.cluster.worker_create_raises = {1}

        with self.assertRaises(HandleCreationError) as ctx:
            self.create_server(make_startup_info(workers_count=2))

        data = ctx.exception.to_dict()
        self.assertEqual(data['error_code'], ServerErrorCode.HANDLE_CREATION_FAILURE.value)
        self.assertEqual(data['component'], 'worker')
        self.assertEqual(data['index'], 1)
        self.assertEqual(data['cause']['type'], 'RuntimeError')
        self.assertEqual(str(ctx.exception), "[worker[1]] Worker creation raised")


class TestLoadFactory(TestCase):
    """测试按导入路径加载工厂"""

    def test_load_factory(self):
        """测试加载可调用对象"""
        self.assertIs(load_factory('fakes:make_startup_info'), make_startup_info)

    def test_invalid_path(self):
        """测试路径格式错误"""
        with self.assertRaises(HandleCreationError) as ctx:
            load_factory('fakes.make_startup_info')

        self.assertEqual(ctx.exception.component, "factory")

    def test_missing_module(self):
        """测试模块不存在"""
        with self.assertRaises(HandleCreationError) as ctx:
            load_factory('missing_module_xyz:create_router')

        self.assertIsInstance(ctx.exception.cause, ImportError)

    def test_not_callable(self):
        """测试目标不可调用"""
        with self.assertRaises(HandleCreationError):
            load_factory('os:sep')
