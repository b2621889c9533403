"""
配置加载模块

从 config.yaml 加载配置，支持 Pydantic 验证和环境变量覆盖。
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_REGIONS: Dict[str, str] = {
    "AS": "http://as.lumineproxy.org:1456/healthz",
    "NA": "http://na.lumineproxy.org:1456/healthz",
    "EU": "http://eu.lumineproxy.org:1456/healthz",
}


class MonitorConfig(BaseModel):
    """探测目标与节奏配置（进程启动后不可变）"""
    main_url: AnyHttpUrl = Field(default="https://lumineproxy.org/", description="主站探测地址")
    regions: Dict[str, AnyHttpUrl] = Field(
        default_factory=lambda: dict(DEFAULT_REGIONS),
        description="区域代码 -> 探测地址",
    )
    interval_ms: int = Field(default=10000, gt=0, description="轮询周期（毫秒）")
    timeout_ms: int = Field(default=5000, gt=0, description="单次探测超时（毫秒）")

    @field_validator("regions")
    @classmethod
    def _check_region_codes(cls, value: Dict[str, AnyHttpUrl]) -> Dict[str, AnyHttpUrl]:
        for code in value:
            if not code or not code.strip():
                raise ValueError("region code must not be empty")
        return value

    def region_urls(self) -> Dict[str, str]:
        """区域地址（字符串形式，保持声明顺序）"""
        return {code: str(url) for code, url in self.regions.items()}


class APIConfig(BaseModel):
    """API 服务配置"""
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    ws_send_timeout_ms: int = Field(default=2000, gt=0, description="单次 WebSocket 推送超时（毫秒）")


class FrontendConfig(BaseModel):
    """前端配置"""
    path: str = "frontend"
    enabled: bool = False


class NotificationConfig(BaseModel):
    """恢复通知配置"""
    enabled: bool = True
    title: str = "Lumine Proxy"
    message: str = "Main site is back online!"
    webhook_url: Optional[AnyHttpUrl] = None
    timeout_ms: int = Field(default=5000, gt=0)


class LoggingConfig(BaseModel):
    """日志配置"""
    level: str = "INFO"
    file: Optional[str] = None


class AppConfig(BaseSettings):
    """应用配置（完整配置）"""
    model_config = SettingsConfigDict(
        env_prefix="LUMINE_MONITOR_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    frontend: FrontendConfig = Field(default_factory=FrontendConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # 环境变量优先于 YAML 中的值
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    加载配置文件

    优先级：
    1. 参数指定的路径
    2. 环境变量 LUMINE_MONITOR_CONFIG
    3. 默认路径 config.yaml

    Raises:
        pydantic.ValidationError: 配置非法（如 URL 格式错误）时抛出
    """
    if config_path is None:
        config_path = os.environ.get("LUMINE_MONITOR_CONFIG", "config.yaml")

    config_file = Path(config_path)

    if config_file.exists():
        with open(config_file, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
            if raw_config:
                frontend = raw_config.get("frontend") or {}
                if frontend.get("path") and not Path(frontend["path"]).is_absolute():
                    # 相对路径按配置文件所在目录解析
                    frontend["path"] = str((config_file.resolve().parent / frontend["path"]).resolve())
                return AppConfig(**raw_config)

    # 配置文件不存在时使用默认配置
    return AppConfig()


# 全局配置实例（延迟加载）
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """获取全局配置实例（单例模式）"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config():
    """重置配置（主要用于测试）"""
    global _config
    _config = None
