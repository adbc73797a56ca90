from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from eth_utils import is_hex_address, to_normalized_address

from calldata_interpreter.app_logging import Tracer, get_logger
from calldata_interpreter.clients.reasoning_client import ReasoningClient
from calldata_interpreter.config import PromptConfig, Settings
from calldata_interpreter.errors import ConfigMissing, InvalidAddress
from calldata_interpreter.integrations.registry_client import RegistryClient
from calldata_interpreter.storage.abi_cache import AbiFileCache

from .interface_resolver import InterfaceResolver, Resolution
from .response_extractor import LlmResponseFields, ResponseExtractor, ResponseMarkers
from .selector_decoder import DecodedCall, SelectorDecoder

logger = get_logger(__name__)


def normalize_address(address: str) -> str:
    """校验并规范化合约地址（小写 0x 形式）"""
    candidate = (address or "").strip()
    if not is_hex_address(candidate):
        raise InvalidAddress(address, {"expected": "20-byte hex address"})
    return to_normalized_address(candidate)


@dataclass(frozen=True)
class DecodeOutcome:
    """decode 能力的结果"""
    contract_address: str
    call: DecodedCall
    resolution: Resolution

    @property
    def warnings(self) -> list[str]:
        if self.resolution.cache_error is None:
            return []
        return [str(self.resolution.cache_error)]


@dataclass(frozen=True)
class AnalysisOutcome:
    """风险分析能力的结果"""
    decoded: DecodeOutcome
    fields: LlmResponseFields
    content: str

    @property
    def risk_level(self) -> str | None:
        return self.fields.risk_level

    @property
    def explanation(self) -> str | None:
        return self.fields.explanation


class InterpreterService:
    """calldata 解释服务：接口解析 + 选择器解码 + 可选的 LLM 风险评估"""

    def __init__(
        self,
        resolver: InterfaceResolver,
        reasoning_client: ReasoningClient,
        prompt_config: PromptConfig | None = None,
        decoder: SelectorDecoder | None = None,
        extractor: ResponseExtractor | None = None,
    ):
        self.resolver = resolver
        self.reasoning_client = reasoning_client
        self.prompt_config = prompt_config
        self.decoder = decoder or SelectorDecoder()
        self.extractor = extractor or ResponseExtractor()

    @classmethod
    def from_settings(cls, settings: Settings, prompt_config: PromptConfig | None = None) -> InterpreterService:
        registry = RegistryClient(
            base_url=settings.registry_base_url,
            api_key=settings.registry_api_key,
            timeout=settings.registry_timeout_s,
            rate_limit_per_min=settings.registry_rate_limit_per_min,
            max_attempts=settings.registry_max_attempts,
        )
        reasoning_client = ReasoningClient(
            base_url=settings.reasoning_base_url,
            api_key=settings.reasoning_api_key,
            timeout=settings.reasoning_timeout_s,
            max_attempts=settings.reasoning_max_attempts,
        )
        resolver = InterfaceResolver(registry=registry, cache=AbiFileCache(settings.abi_cache_dir))
        return cls(resolver=resolver, reasoning_client=reasoning_client, prompt_config=prompt_config)

    def require_analysis_config(self) -> PromptConfig:
        """分析前检查推理服务配置"""
        if not self.reasoning_client.is_configured:
            raise ConfigMissing("DEEPSEEK_API_KEY", {"hint": "Set DEEPSEEK_API_KEY in the environment or .env file"})
        if self.prompt_config is None:
            raise ConfigMissing("prompt configuration", {"hint": "Check PROMPT_CONFIG_PATH"})
        return self.prompt_config

    async def decode(self, contract_address: str, call_data: str, tracer: Tracer | None = None) -> DecodeOutcome:
        """解析接口并解码 calldata"""
        tracer = tracer or Tracer(contract_address=contract_address)
        address = normalize_address(contract_address)

        with tracer.step("resolve_interface", {"address": address}) as step:
            resolution = await self.resolver.resolve_detailed(address)
            step.set_output({
                "source": resolution.source,
                "functions": len(resolution.definition),
                "cache_error": str(resolution.cache_error) if resolution.cache_error else None,
            })

        with tracer.step("decode_calldata", {"call_data_chars": len(call_data or "")}) as step:
            call = self.decoder.decode(resolution.definition, call_data)
            step.set_output({"function": call.function_name, "signature": call.signature})

        logger.info(
            "decode_completed",
            address=address,
            function=call.function_name,
            selector=call.selector,
            source=resolution.source,
        )
        return DecodeOutcome(contract_address=address, call=call, resolution=resolution)

    async def assess(self, decoded: DecodeOutcome, tracer: Tracer | None = None) -> AnalysisOutcome:
        """请求推理服务评估已解码的调用"""
        tracer = tracer or Tracer(contract_address=decoded.contract_address)
        prompt_config = self.require_analysis_config()

        user_prompt = prompt_config.render_user_prompt(
            contract_address=decoded.contract_address,
            function_name=decoded.call.function_name,
            arguments=json.dumps(decoded.call.formatted_args(), ensure_ascii=False),
        )

        with tracer.step("call_reasoning", {"model": prompt_config.model_settings.model}) as step:
            content = await self.reasoning_client.complete(
                model=prompt_config.model_settings.model,
                system_message=prompt_config.system_message,
                user_prompt=user_prompt,
                stream=prompt_config.model_settings.stream,
            )
            step.set_output({"content_chars": len(content)})

        with tracer.step("extract_fields") as step:
            markers = ResponseMarkers.from_response_format(prompt_config.response_format)
            fields = self.extractor.extract(content, markers)
            step.set_output(fields.to_dict())

        logger.info(
            "analysis_completed",
            address=decoded.contract_address,
            function=decoded.call.function_name,
            risk_level=fields.risk_level,
        )
        return AnalysisOutcome(decoded=decoded, fields=fields, content=content)

    async def analyze(self, contract_address: str, call_data: str, tracer: Tracer | None = None) -> AnalysisOutcome:
        """一站式：配置检查 -> 解码 -> 风险评估"""
        tracer = tracer or Tracer(contract_address=contract_address)
        self.require_analysis_config()
        decoded = await self.decode(contract_address, call_data, tracer=tracer)
        return await self.assess(decoded, tracer=tracer)

    def health(self) -> dict[str, Any]:
        return {
            "reasoning": "configured" if self.reasoning_client.is_configured else "not_configured",
            "prompt_config": "loaded" if self.prompt_config is not None else "missing",
            "abi_cache_dir": str(self.resolver.cache.cache_dir),
        }
