"""
集群监管层安装配置

该文件定义了项目的安装配置、依赖管理和脚本入口点。
"""

from setuptools import setup, find_packages
import os


def get_version():
    """从版本文件获取版本号"""
    version_file = os.path.join(os.path.dirname(__file__), 'VERSION')
    if os.path.exists(version_file):
        with open(version_file, 'r', encoding='utf-8') as f:
            return f.read().strip()
    return '1.0.0'


def get_long_description():
    """获取长描述"""
    readme_file = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_file):
        with open(readme_file, 'r', encoding='utf-8') as f:
            return f.read()
    return ''


def get_requirements():
    """获取依赖列表"""
    requirements_file = os.path.join(os.path.dirname(__file__), 'requirements.txt')
    if os.path.exists(requirements_file):
        with open(requirements_file, 'r', encoding='utf-8') as f:
            requirements = []
            for line in f:
                line = line.strip()
                if line and not line.startswith('#'):
                    requirements.append(line)
            return requirements
    return []


# 测试依赖
test_requirements = [
    'pytest>=7.4.0',
    'pytest-cov>=4.1.0',
]

# 开发依赖
dev_requirements = test_requirements + [
    'black>=23.11.0',
    'flake8>=6.1.0',
    'mypy>=1.7.0',
]

setup(
    name='zone-cluster',
    version=get_version(),
    description='多进程游戏服务器集群的监管层：Router/Worker生命周期与同级进程启动',
    long_description=get_long_description(),
    long_description_content_type='text/markdown',

    author='Zone Cluster Team',

    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Operating System :: POSIX',
        'Operating System :: Microsoft :: Windows',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Games/Entertainment',
        'Topic :: System :: Distributed Computing',
    ],

    keywords=['game server', 'cluster', 'supervisor', 'process launcher'],

    license='MIT',
    python_requires='>=3.9',

    packages=find_packages(exclude=['tests*']),
    include_package_data=True,

    install_requires=get_requirements(),
    extras_require={
        'test': test_requirements,
        'dev': dev_requirements,
    },

    entry_points={
        'console_scripts': [
            'zone-cluster=server_launcher.launcher:main',
            'zone-server=server_launcher.launcher:member_main',
        ],
    },

    zip_safe=False,
)
