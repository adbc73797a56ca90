from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from calldata_interpreter.errors import ConfigMissing

REGISTRY_BASE_URL = "https://api-sepolia.arbiscan.io/api"
REASONING_BASE_URL = "https://api.deepseek.com"
DEFAULT_PROMPT_CONFIG_PATH = Path(__file__).resolve().parent / "prompt_config.json"


class ResponseFormat(BaseModel):
    """LLM 输出中的字段标记"""
    risk_level_prefix: str = Field(min_length=1)
    explanation_prefix: str = Field(min_length=1)


class ModelSettings(BaseModel):
    """推理模型参数"""
    model: str
    stream: bool = False


class PromptConfig(BaseModel):
    """提示词配置"""
    system_message: str
    user_prompt_template: str
    response_format: ResponseFormat
    model_settings: ModelSettings

    def render_user_prompt(self, contract_address: str, function_name: str, arguments: str) -> str:
        """填充用户提示词模板"""
        return (
            self.user_prompt_template
            .replace("{contract_address}", contract_address)
            .replace("{function_name}", function_name)
            .replace("{arguments}", arguments)
        )


def load_prompt_config(path: str | Path | None = None) -> PromptConfig:
    """从 JSON 文件加载提示词配置"""
    config_path = Path(path) if path else DEFAULT_PROMPT_CONFIG_PATH
    try:
        content = config_path.read_text(encoding="utf-8")
        return PromptConfig.model_validate(json.loads(content))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ConfigMissing("prompt configuration", {"path": str(config_path), "reason": str(e)}) from e


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # 基础配置
    app_env: str = Field(default="local", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8080, alias="PORT")

    # 合约接口注册表 (Etherscan 兼容)
    registry_base_url: str = Field(default=REGISTRY_BASE_URL, alias="REGISTRY_BASE_URL")
    registry_api_key: str = Field(default="", alias="ARBISCAN_API_KEY")
    registry_timeout_s: float = Field(default=30.0, alias="REGISTRY_TIMEOUT_S")
    registry_rate_limit_per_min: int = Field(default=0, alias="REGISTRY_RATE_LIMIT_PER_MIN")
    registry_max_attempts: int = Field(default=1, ge=1, alias="REGISTRY_MAX_ATTEMPTS")

    # 推理服务 (OpenAI 兼容 chat completions)
    reasoning_base_url: str = Field(default=REASONING_BASE_URL, alias="REASONING_BASE_URL")
    reasoning_api_key: str = Field(default="", alias="DEEPSEEK_API_KEY")
    reasoning_timeout_s: float = Field(default=90.0, alias="REASONING_TIMEOUT_S")
    reasoning_max_attempts: int = Field(default=1, ge=1, alias="REASONING_MAX_ATTEMPTS")

    # ABI 缓存
    abi_cache_dir: str = Field(default="ABI", alias="ABI_CACHE_DIR")

    # 提示词
    prompt_config_path: str | None = Field(default=None, alias="PROMPT_CONFIG_PATH")


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
