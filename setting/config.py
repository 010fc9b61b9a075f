"""
配置管理模块

该模块提供了配置管理的基础类，支持从默认值、配置文件和环境变量
分层加载配置，并使用Pydantic进行配置验证。

加载优先级：环境变量 > 配置文件 > 默认配置
"""

import os
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Type

import yaml
from loguru import logger
from pydantic import BaseModel, ValidationError


class ConfigError(Exception):
    """配置相关异常"""
    pass


class BaseConfig(ABC):
    """
    配置基类

    环境变量前缀由类名推导（ClusterConfig -> CLUSTER_），
    嵌套键使用双下划线分隔，例如 CLUSTER_ROUTER__PORT=2004。
    """

    def __init__(self):
        """初始化配置"""
        self._config_data: Dict[str, Any] = {}
        self._env_prefix: str = self.__class__.__name__.upper().replace('CONFIG', '')
        self._config_file: Optional[str] = None

    @abstractmethod
    def get_default_config(self) -> Dict[str, Any]:
        """
        获取默认配置

        Returns:
            Dict[str, Any]: 默认配置字典
        """

    def load(self, config_file: Optional[str] = None) -> None:
        """
        加载配置

        Args:
            config_file: 配置文件路径（.yml/.yaml/.json）

        Raises:
            ConfigError: 配置文件无法读取或配置验证失败
        """
        self._config_data = self.get_default_config()

        if config_file:
            self._config_file = config_file
            self._merge_config(self._config_data, self._load_from_file(config_file))

        for key, value in self._load_from_env().items():
            self.set(key, value)

        self._validate_config()
        logger.info(f"配置加载成功: {self.__class__.__name__}")

    def reload(self) -> bool:
        """
        重新加载配置

        Returns:
            bool: 配置是否有变化
        """
        old_config = json.dumps(self._config_data, sort_keys=True, default=str)
        self.load(self._config_file)
        return old_config != json.dumps(self._config_data, sort_keys=True, default=str)

    def get(self, key: str, default: Any = None) -> Any:
        """
        获取配置值

        Args:
            key: 配置键，支持点分隔的嵌套键
            default: 默认值
        """
        value = self._config_data
        try:
            for k in key.split('.'):
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> None:
        """
        设置配置值

        Args:
            key: 配置键，支持点分隔的嵌套键
            value: 配置值
        """
        keys = key.split('.')
        config = self._config_data
        for k in keys[:-1]:
            if not isinstance(config.get(k), dict):
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return dict(self._config_data)

    def _load_from_file(self, config_file: str) -> Dict[str, Any]:
        file_path = Path(config_file)

        if not file_path.exists():
            raise ConfigError(f"配置文件不存在: {config_file}")

        suffix = file_path.suffix.lower()
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                if suffix in ('.yml', '.yaml'):
                    return yaml.safe_load(f) or {}
                if suffix == '.json':
                    return json.load(f) or {}
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.error(f"读取配置文件失败: {e}")
            raise ConfigError(f"读取配置文件失败: {e}")

        raise ConfigError(f"不支持的配置文件格式: {file_path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        env_config = {}
        prefix = f"{self._env_prefix}_"

        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower().replace('__', '.')
                env_config[config_key] = self._convert_env_value(value)

        return env_config

    @staticmethod
    def _convert_env_value(value: str) -> Any:
        """转换环境变量值的数据类型"""
        if value.lower() in ('true', 'yes', 'on'):
            return True
        if value.lower() in ('false', 'no', 'off'):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return json.loads(value)
        except ValueError:
            return value

    @classmethod
    def _merge_config(cls, target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
        """递归合并字典"""
        for key, value in source.items():
            if isinstance(target.get(key), dict) and isinstance(value, dict):
                cls._merge_config(target[key], value)
            else:
                target[key] = value
        return target

    @abstractmethod
    def _validate_config(self) -> None:
        """验证配置"""


class PydanticConfig(BaseConfig):
    """
    基于Pydantic的配置类

    提供强类型配置验证和自动类型转换
    """

    def __init__(self, model_class: Type[BaseModel]):
        """
        初始化

        Args:
            model_class: Pydantic模型类（所有字段必须有默认值）
        """
        super().__init__()
        self._model_class = model_class
        self._model_instance: Optional[BaseModel] = None

    def get_default_config(self) -> Dict[str, Any]:
        """从Pydantic模型的字段默认值生成默认配置"""
        return self._model_class().model_dump()

    def _validate_config(self) -> None:
        """使用Pydantic验证配置"""
        try:
            self._model_instance = self._model_class.model_validate(self._config_data)
        except ValidationError as e:
            logger.error(f"配置验证失败: {e}")
            raise ConfigError(f"配置验证失败: {e}")

        self._config_data = self._model_instance.model_dump()
        logger.debug("Pydantic配置验证通过")

    @property
    def model(self) -> BaseModel:
        """
        获取Pydantic模型实例

        Raises:
            ConfigError: 配置尚未加载
        """
        if self._model_instance is None:
            raise ConfigError("配置尚未加载或验证失败")
        return self._model_instance
