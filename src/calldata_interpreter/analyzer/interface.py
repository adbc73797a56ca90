"""
合约接口定义

将 ABI JSON 转换为不可变的 InterfaceDefinition：函数名 -> 重载签名列表。
选择器始终由规范签名字符串计算得出，不从 ABI 来源中读取。
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from functools import cached_property
from types import MappingProxyType
from typing import Any, Mapping

from eth_utils import keccak

# ABI 条目中 type 缺省时视为 function
_FUNCTION_TYPE = "function"

_INT_ALIAS_RE = re.compile(r"^(u?int)(?=$|\[)")
_FIXED_ALIAS_RE = re.compile(r"^(u?fixed)(?=$|\[)")


class InterfaceFormatError(ValueError):
    """ABI JSON 结构不合法"""


def canonical_type(param: Mapping[str, Any]) -> str:
    """计算参数的规范类型字符串（展开 tuple 组件，补全 uint/int 别名）"""
    type_ = param.get("type")
    if not isinstance(type_, str) or not type_:
        raise InterfaceFormatError(f"Parameter without type: {param!r}")

    if type_.startswith("tuple"):
        components = param.get("components")
        if not isinstance(components, list):
            raise InterfaceFormatError(f"Tuple parameter without components: {param!r}")
        inner = ",".join(canonical_type(c) for c in components)
        return f"({inner}){type_[len('tuple'):]}"

    type_ = _INT_ALIAS_RE.sub(r"\g<1>256", type_)
    return _FIXED_ALIAS_RE.sub(r"\g<1>128x18", type_)


def split_tuple_types(types_str: str) -> list[str]:
    """按顶层逗号拆分类型列表"""
    types = []
    depth = 0
    current = ""

    for char in types_str:
        if char == "(":
            depth += 1
            current += char
        elif char == ")":
            depth -= 1
            current += char
        elif char == "," and depth == 0:
            if current.strip():
                types.append(current.strip())
            current = ""
        else:
            current += char

    if current.strip():
        types.append(current.strip())

    return types


@dataclass(frozen=True)
class Parameter:
    """函数参数"""
    name: str
    type: str


@dataclass(frozen=True)
class FunctionSignature:
    """单个函数签名（一个重载变体）"""
    name: str
    parameters: tuple[Parameter, ...] = ()

    @property
    def types(self) -> list[str]:
        return [p.type for p in self.parameters]

    @property
    def canonical(self) -> str:
        return f"{self.name}({','.join(self.types)})"

    @cached_property
    def selector(self) -> bytes:
        """keccak256(规范签名) 的前 4 字节"""
        return keccak(text=self.canonical)[:4]

    @property
    def selector_hex(self) -> str:
        return "0x" + self.selector.hex()

    @classmethod
    def from_abi_item(cls, item: Mapping[str, Any]) -> FunctionSignature:
        name = item.get("name")
        if not isinstance(name, str) or not name:
            raise InterfaceFormatError(f"Function entry without name: {item!r}")

        inputs = item.get("inputs") or []
        if not isinstance(inputs, list):
            raise InterfaceFormatError(f"Function {name} has non-list inputs")

        parameters = []
        for i, inp in enumerate(inputs):
            if not isinstance(inp, Mapping):
                raise InterfaceFormatError(f"Function {name} has malformed input #{i}")
            parameters.append(Parameter(name=inp.get("name") or f"arg{i}", type=canonical_type(inp)))
        return cls(name=name, parameters=tuple(parameters))


@dataclass(frozen=True)
class InterfaceDefinition:
    """合约接口定义"""
    functions: Mapping[str, tuple[FunctionSignature, ...]]
    abi: list[dict[str, Any]] = field(default_factory=list, compare=False, repr=False)

    def __iter__(self):
        for name, variants in self.functions.items():
            for signature in variants:
                yield name, signature

    def __len__(self) -> int:
        return sum(len(v) for v in self.functions.values())

    def signatures(self) -> list[str]:
        return [sig.canonical for _, sig in self]

    @classmethod
    def from_abi(cls, abi: Any) -> InterfaceDefinition:
        """从已解析的 ABI 列表构建"""
        if not isinstance(abi, list):
            raise InterfaceFormatError(f"ABI must be a JSON array, got {type(abi).__name__}")

        grouped: dict[str, list[FunctionSignature]] = {}
        for item in abi:
            if not isinstance(item, Mapping):
                raise InterfaceFormatError(f"ABI entry must be an object: {item!r}")
            if item.get("type", _FUNCTION_TYPE) != _FUNCTION_TYPE:
                continue

            signature = FunctionSignature.from_abi_item(item)
            variants = grouped.setdefault(signature.name, [])
            if signature not in variants:
                variants.append(signature)

        functions = MappingProxyType({name: tuple(v) for name, v in grouped.items()})
        return cls(functions=functions, abi=abi)

    @classmethod
    def from_json(cls, text: str | bytes) -> InterfaceDefinition:
        """从 ABI JSON 文本构建"""
        try:
            abi = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InterfaceFormatError(f"ABI is not valid JSON: {e}") from e
        return cls.from_abi(abi)
