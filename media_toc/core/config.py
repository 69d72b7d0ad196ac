import os
import yaml
from pathlib import Path
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource


def _is_docker_environment() -> bool:
    """检测是否在Docker容器中运行"""
    # 方法1: 检查 /.dockerenv 文件（Docker标准做法）
    if Path("/.dockerenv").exists():
        return True
    # 方法2: 检查环境变量
    if os.getenv("DOCKER_CONTAINER") == "true" or os.getenv("IN_DOCKER") == "true":
        return True
    # 方法3: 检查当前工作目录是否为 /app
    if Path.cwd() == Path("/app"):
        return True
    return False


def get_config_dir() -> Path:
    """容器内使用 /app/config，源码运行使用 ./config"""
    return Path("/app/config") if _is_docker_environment() else Path("config")


# 1. 为配置的不同部分创建 Pydantic 模型，提供类型提示和默认值
class LogConfig(BaseModel):
    level: str = "INFO"
    dir: str = ""                       # 为空时使用 {config_dir}/logs


class TocConfig(BaseModel):
    # 章节号/卷号位置出现这些标记时整条丢弃
    invalid_markers: List[str] = ["DELETED", "DELETE", "SPAM"]
    # 是否去掉标题开头的作品名前缀
    strip_series_prefix: bool = True


# 2. 自定义配置源，从 config/config.yml 加载设置
class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    def __init__(self, settings_cls: type[BaseSettings]):
        super().__init__(settings_cls)
        self.yaml_file = get_config_dir() / "config.yml"

    def get_field_value(self, field, field_name):
        return None, None, False

    def __call__(self) -> Dict[str, Any]:
        if not self.yaml_file.is_file():
            return {}
        with open(self.yaml_file, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}


# 3. 主设置类，聚合所有配置
class Settings(BaseSettings):
    log: LogConfig = LogConfig()
    toc: TocConfig = TocConfig()
    environment: str = "production"

    class Config:
        # 为环境变量设置前缀，避免与系统变量冲突
        # 例如 MEDIATOC_LOG__LEVEL=DEBUG
        env_prefix = "MEDIATOC_"
        case_sensitive = False
        env_nested_delimiter = '__'

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # 加载源的优先级:
        # 1. 环境变量 (最高)
        # 2. .env 文件
        # 3. YAML 文件
        # 4. 文件密钥
        # 5. Pydantic 模型中的默认值 (最低)
        return (
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
            init_settings,
        )


settings = Settings()
