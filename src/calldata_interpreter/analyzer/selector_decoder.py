"""
选择器匹配与参数解码

按 ABI 声明顺序扫描所有函数及其重载变体，选择器字节匹配后尝试按该变体的参数类型解码，
第一个解码成功的变体即为结果；解码失败的变体被跳过，继续扫描。
"""
from __future__ import annotations

import binascii
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import ABITypeError, DecodingError, ParseError
from eth_utils import decode_hex, to_checksum_address

from calldata_interpreter.app_logging import get_logger
from calldata_interpreter.errors import (
    CallDataTooShort,
    InvalidCallData,
    PayloadDecodeError,
    SelectorNotFound,
)

from .interface import FunctionSignature, InterfaceDefinition, split_tuple_types

logger = get_logger(__name__)

SELECTOR_SIZE = 4


def normalize_call_data(call_data: str | bytes) -> bytes:
    """将 calldata 统一为字节（接受带或不带 0x 前缀的十六进制）"""
    if isinstance(call_data, (bytes, bytearray)):
        return bytes(call_data)

    cleaned = call_data.strip()
    try:
        return decode_hex(cleaned)
    except (binascii.Error, ValueError) as e:
        raise InvalidCallData(f"Call data is not valid hex: {e}", {"call_data": cleaned[:80]}) from e


def format_value(value: Any, type_: str) -> Any:
    """将解码值转换为 JSON 安全的表示"""
    if type_.endswith("]") and isinstance(value, (list, tuple)):
        element_type = type_[: type_.rindex("[")]
        return [format_value(v, element_type) for v in value]
    if type_.startswith("(") and isinstance(value, (list, tuple)):
        component_types = split_tuple_types(type_[1:-1])
        return [format_value(v, t) for v, t in zip(value, component_types)]
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if type_ == "address" and isinstance(value, str):
        return to_checksum_address(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, Decimal):
        # fixed/ufixed 类型
        return str(value)
    if isinstance(value, int):
        return str(value)
    return value


@dataclass(frozen=True)
class DecodedArgument:
    """解码后的参数"""
    name: str
    type: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "value": format_value(self.value, self.type),
        }


@dataclass(frozen=True)
class DecodedCall:
    """解码结果"""
    function_name: str
    signature: str
    selector: str
    arguments: tuple[DecodedArgument, ...] = field(default_factory=tuple)

    @property
    def args(self) -> list[Any]:
        """按声明顺序的参数值"""
        return [a.value for a in self.arguments]

    def formatted_args(self) -> list[Any]:
        return [format_value(a.value, a.type) for a in self.arguments]

    def to_dict(self) -> dict[str, Any]:
        return {
            "function_name": self.function_name,
            "signature": self.signature,
            "selector": self.selector,
            "arguments": [a.to_dict() for a in self.arguments],
        }


class SelectorDecoder:
    """函数选择器解码器"""

    def decode(self, interface: InterfaceDefinition, call_data: str | bytes) -> DecodedCall:
        """解码 calldata"""
        data = normalize_call_data(call_data)
        if len(data) < SELECTOR_SIZE:
            raise CallDataTooShort(len(data))

        selector = data[:SELECTOR_SIZE]
        payload = data[SELECTOR_SIZE:]
        selector_hex = "0x" + selector.hex()

        failures: list[dict[str, str]] = []
        for name, signature in interface:
            if signature.selector != selector:
                continue

            try:
                values = self._decode_payload(signature, payload)
            except PayloadDecodeError as e:
                logger.debug("payload_decode_failed", selector=selector_hex, signature=e.signature, error=e.reason)
                failures.append({"signature": e.signature, "reason": e.reason})
                continue

            arguments = tuple(
                DecodedArgument(name=param.name, type=param.type, value=value)
                for param, value in zip(signature.parameters, values)
            )
            logger.debug("calldata_decoded", selector=selector_hex, signature=signature.canonical)
            return DecodedCall(
                function_name=name,
                signature=signature.canonical,
                selector=selector_hex,
                arguments=arguments,
            )

        logger.info("selector_not_found", selector=selector_hex, candidates=len(failures))
        details: dict[str, Any] = {"selector": selector_hex}
        if failures:
            details["decode_failures"] = failures
        raise SelectorNotFound(selector_hex, details)

    def _decode_payload(self, signature: FunctionSignature, payload: bytes) -> tuple[Any, ...]:
        """按签名的参数类型解码参数数据"""
        try:
            return tuple(abi_decode(signature.types, payload))
        except (DecodingError, ABITypeError, ParseError, ValueError, OverflowError) as e:
            raise PayloadDecodeError(signature.canonical, str(e)) from e
