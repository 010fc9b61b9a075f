"""
测试服务启动器

该模块包含命令行解析、集群成员运行和同级进程批量启动的单元测试。
"""

import shutil
import tempfile
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch

import yaml

from common.server import (
    LAUNCH_TOKEN_FIELDS, LaunchError, ProcessBackend, ProcessLauncher,
    build_launch_descriptor
)
from server_launcher.launcher import (
    ServerLauncher, main, member_main, parse_arguments, parse_member_arguments
)
from setting import load_cluster_config
from fakes import FakeCluster, make_startup_info


class RecordingBackend(ProcessBackend):
    """记录启动描述的后端，可指定第几次启动失败"""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.spawned = []

    def spawn(self, descriptor):
        attempt = len(self.spawned)
        self.spawned.append(descriptor)
        if attempt in self.fail_on:
            raise LaunchError("Cannot launch executable", executable=descriptor.executable,
                              reason="No such file or directory")
        return 2000 + attempt


class LauncherTestCase(TestCase):
    """启动器测试基类"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.cluster = FakeCluster()

        patcher = patch('server_launcher.launcher.initialize_logging')
        self.mock_initialize_logging = patcher.start()
        self.addCleanup(patcher.stop)

        patcher = patch('server_launcher.launcher.set_global_log_level')
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def write_config(self, **overrides) -> str:
        data = {
            'output': self.temp_dir,
            'executable': 'zone_server',
            'router_factory': 'cluster.router:create_router',
            'worker_factory': 'cluster.worker:create_worker',
            'router': {'router_id': 3, 'workers_count': 2},
        }
        data.update(overrides)
        path = Path(self.temp_dir) / "cluster.yml"
        path.write_text(yaml.safe_dump(data), encoding='utf-8')
        return str(path)

    def fake_load_factory(self, path):
        if path.endswith('create_router'):
            return self.cluster.create_router
        return self.cluster.create_worker


class TestArgumentParsing(TestCase):
    """测试命令行解析"""

    def test_parse_member_arguments(self):
        """测试同级进程的位置参数"""
        descriptor = build_launch_descriptor(make_startup_info(workers_count=1), "zone_server")

        args = parse_member_arguments(list(descriptor.arguments) + ['--config', 'cluster.yml'])

        self.assertEqual(args.router_id, descriptor.arguments[0])
        self.assertEqual(args.output, descriptor.arguments[-1])
        self.assertEqual(args.config, 'cluster.yml')
        self.assertEqual([getattr(args, name) for name in LAUNCH_TOKEN_FIELDS],
                         list(descriptor.arguments))

    def test_parse_member_arguments_missing(self):
        """测试缺少位置参数"""
        with self.assertRaises(SystemExit):
            parse_member_arguments(['1', '127.0.0.1'])

    def test_parse_spawn_arguments(self):
        """测试spawn子命令"""
        args = parse_arguments(['spawn', '-c', 'cluster.yml', '-n', '3', '--worker-index', '1'])

        self.assertEqual(args.action, 'spawn')
        self.assertEqual(args.config, 'cluster.yml')
        self.assertEqual(args.count, 3)
        self.assertEqual(args.worker_index, 1)
        self.assertIsNone(args.executable)

    def test_action_required(self):
        """测试必须指定子命令"""
        with self.assertRaises(SystemExit):
            parse_arguments([])


class TestRunMember(LauncherTestCase):
    """测试运行集群成员"""

    def test_run_member(self):
        """测试创建并启动Server"""
        config = load_cluster_config(self.write_config())
        launcher = ServerLauncher(config)

        with patch('server_launcher.launcher.load_factory', side_effect=self.fake_load_factory):
            exit_code = launcher.run_member(config.to_startup_info(), wait=False)

        self.assertEqual(exit_code, 0)
        self.assertEqual(self.cluster.events_of('worker.start'), [0, 1])
        self.assertEqual(self.cluster.events_of('router.start'), [3])
        self.mock_initialize_logging.assert_called_once_with(
            service_type='zone', port=2004, log_dir=self.temp_dir)

        launcher.shutdown()
        self.assertIsNone(launcher.server)
        self.assertEqual(self.cluster.events_of('router.destroy'), [3])

    def test_run_member_without_factories(self):
        """测试未配置工厂"""
        config = load_cluster_config(self.write_config(router_factory=None))

        exit_code = ServerLauncher(config).run_member(config.to_startup_info(), wait=False)

        self.assertEqual(exit_code, 1)

    def test_run_member_bad_factory(self):
        """测试工厂路径无法导入"""
        config = load_cluster_config(self.write_config(router_factory='missing_module_xyz:create'))

        exit_code = ServerLauncher(config).run_member(config.to_startup_info(), wait=False)

        self.assertEqual(exit_code, 1)

    def test_run_member_start_failure(self):
        """测试启动失败时销毁Server"""
        self.cluster.worker_start_fails = {1}
        config = load_cluster_config(self.write_config())
        launcher = ServerLauncher(config)

        with patch('server_launcher.launcher.load_factory', side_effect=self.fake_load_factory):
            exit_code = launcher.run_member(config.to_startup_info(), wait=False)

        self.assertEqual(exit_code, 1)
        self.assertEqual(self.cluster.events_of('router.start'), [])
        self.assertEqual(self.cluster.events_of('worker.destroy'), [0, 1])
        self.assertEqual(self.cluster.events_of('router.destroy'), [3])

    def test_member_main(self):
        """测试同级进程入口解析参数后运行"""
        config_file = self.write_config()
        descriptor = build_launch_descriptor(make_startup_info(workers_count=2, router_id=11),
                                             "zone_server")

        with patch.object(ServerLauncher, 'run_member', return_value=0) as mock_run:
            exit_code = member_main(list(descriptor.arguments) + ['--config', config_file])

        self.assertEqual(exit_code, 0)
        info = mock_run.call_args[0][0]
        self.assertEqual(info.router_info.router_id, 11)
        self.assertEqual(info.workers_count, 2)

    def test_member_main_invalid_arguments(self):
        """测试同级进程参数无法解析"""
        arguments = ['x'] * len(LAUNCH_TOKEN_FIELDS)

        with patch.object(ServerLauncher, 'run_member') as mock_run:
            exit_code = member_main(arguments)

        self.assertEqual(exit_code, 1)
        mock_run.assert_not_called()


class TestSpawnMembers(LauncherTestCase):
    """测试批量启动同级进程"""

    def test_spawn_members(self):
        """测试每个进程收到相同的启动参数"""
        config = load_cluster_config(self.write_config())
        launcher = ServerLauncher(config)
        backend = RecordingBackend()
        launcher.process_launcher = ProcessLauncher(backend)

        exit_code = launcher.spawn_members('zone_server', count=3)

        self.assertEqual(exit_code, 0)
        self.assertEqual(len(backend.spawned), 3)
        expected = build_launch_descriptor(config.to_startup_info(), 'zone_server')
        for descriptor in backend.spawned:
            self.assertEqual(descriptor, expected)

    def test_spawn_failure_does_not_stop_others(self):
        """测试某个进程启动失败不影响其余进程"""
        config = load_cluster_config(self.write_config())
        launcher = ServerLauncher(config)
        backend = RecordingBackend(fail_on={0})
        launcher.process_launcher = ProcessLauncher(backend)

        exit_code = launcher.spawn_members('zone_server', count=2)

        self.assertEqual(exit_code, 1)
        self.assertEqual(len(backend.spawned), 2)

    def test_spawn_invalid_worker_index(self):
        """测试Worker索引越界"""
        config = load_cluster_config(self.write_config())
        launcher = ServerLauncher(config)
        backend = RecordingBackend()
        launcher.process_launcher = ProcessLauncher(backend)

        exit_code = launcher.spawn_members('zone_server', count=1, worker_index=5)

        self.assertEqual(exit_code, 1)
        self.assertEqual(backend.spawned, [])

    def test_main_spawn(self):
        """测试spawn子命令默认使用配置中的可执行文件"""
        config_file = self.write_config()

        with patch.object(ServerLauncher, 'spawn_members', return_value=0) as mock_spawn:
            exit_code = main(['spawn', '--config', config_file, '--count', '2'])

        self.assertEqual(exit_code, 0)
        mock_spawn.assert_called_once_with('zone_server', 2, 0)

    def test_main_missing_config(self):
        """测试配置文件不存在"""
        exit_code = main(['run', '--config', str(Path(self.temp_dir) / 'missing.yml')])
        self.assertEqual(exit_code, 1)
