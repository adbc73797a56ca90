"""
解释器异常体系

所有错误均继承 InterpreterError，携带稳定的 kind、可读 message 以及 details 诊断字典，
由 API / CLI 边界层据此选择 HTTP 状态码与输出。
"""
from __future__ import annotations

from typing import Any


class InterpreterError(Exception):
    """解释器基础异常"""

    kind = "InterpreterError"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
        }


# ==================== 输入错误 ====================

class InvalidAddress(InterpreterError):
    """合约地址格式无效"""

    kind = "InvalidAddress"

    def __init__(self, address: str, details: dict[str, Any] | None = None):
        super().__init__(f"Invalid contract address: {address}", details)
        self.address = address


class InvalidCallData(InterpreterError):
    """calldata 不是合法的十六进制"""

    kind = "InvalidCallData"


class CallDataTooShort(InterpreterError):
    """calldata 不足 4 字节，无法取出函数选择器"""

    kind = "CallDataTooShort"

    def __init__(self, length: int):
        super().__init__(
            f"Call data too short: {length} bytes, a 4-byte selector is required",
            {"length": length},
        )
        self.length = length


# ==================== 解码错误 ====================

class SelectorNotFound(InterpreterError):
    """没有任何函数签名能匹配并解码该选择器"""

    kind = "SelectorNotFound"

    def __init__(self, selector: str, details: dict[str, Any] | None = None):
        super().__init__(f"No matching function for selector: {selector}", details)
        self.selector = selector


class PayloadDecodeError(InterpreterError):
    """选择器匹配但参数数据与签名不符（仅在扫描内部使用）"""

    kind = "PayloadDecodeError"

    def __init__(self, signature: str, reason: str):
        super().__init__(f"Failed to decode payload as {signature}: {reason}", {"signature": signature})
        self.signature = signature
        self.reason = reason


# ==================== 远程调用错误 ====================

class NetworkError(InterpreterError):
    """传输层失败"""

    kind = "NetworkError"


class TimedOut(NetworkError):
    """请求超时"""

    kind = "TimedOut"


class RegistryError(InterpreterError):
    """注册表明确返回失败"""

    kind = "RegistryError"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(f"Registry error: {message}", details)
        self.registry_message = message


class InvalidResponseShape(InterpreterError):
    """远程响应不是预期的 JSON 结构"""

    kind = "InvalidResponseShape"


class ReasoningServiceError(InterpreterError):
    """推理服务返回非 2xx 状态"""

    kind = "ReasoningServiceError"

    def __init__(self, status_code: int, body: str):
        super().__init__(
            f"Reasoning service error (HTTP status: {status_code})",
            {"status_code": status_code, "body": body},
        )
        self.status_code = status_code


# ==================== 缓存错误 ====================

class CacheCorrupt(InterpreterError):
    """本地缓存文件无法解析"""

    kind = "CacheCorrupt"

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cached interface is corrupt: {path}", {"path": path, "reason": reason})
        self.path = path


class CacheWriteError(InterpreterError):
    """缓存写入失败（非致命）"""

    kind = "CacheWriteError"

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to write interface cache: {path}", {"path": path, "reason": reason})
        self.path = path


# ==================== 配置错误 ====================

class ConfigMissing(InterpreterError):
    """缺少必要配置"""

    kind = "ConfigMissing"

    def __init__(self, setting: str, details: dict[str, Any] | None = None):
        super().__init__(f"{setting} is not configured", details)
        self.setting = setting


# 属于调用方输入问题的错误类型（边界层映射为 4xx）
CLIENT_ERRORS: tuple[type[InterpreterError], ...] = (
    InvalidAddress,
    InvalidCallData,
    CallDataTooShort,
)
