from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class DecodeRequest(BaseModel):
    """calldata 解码请求"""
    contract_address: str
    call_data: str


class AnalysisRequest(BaseModel):
    """风险分析请求"""
    contract_address: str
    call_data: str


class ArgumentInfo(BaseModel):
    """解码后的参数"""
    name: str
    type: str
    value: Any = None


class DecodeResponse(BaseModel):
    """calldata 解码响应"""
    status: Literal["success", "error"] = "success"
    function_name: str | None = None
    signature: str | None = None
    selector: str | None = None
    arguments: list[ArgumentInfo] | None = None
    abi: list[dict[str, Any]] | None = None  # 返回 ABI 供调用方自行分析
    message: str | None = None
    details: str | None = None  # 附加诊断信息
    error_kind: str | None = None
    trace_id: str | None = None
    timings: dict[str, int] = Field(default_factory=dict)


class AnalysisResponse(BaseModel):
    """风险分析响应"""
    status: Literal["success", "error"] = "success"
    function_name: str | None = None
    arguments: list[ArgumentInfo] | None = None
    risk_level: str | None = None  # 如 Low / Medium / High / Caution / Unknown
    explanation: str | None = None
    message: str | None = None
    details: str | None = None
    error_kind: str | None = None
    trace_id: str | None = None
    timings: dict[str, int] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """健康检查响应"""
    status: Literal["ok", "degraded"]
    version: str
    dependencies: dict[str, str] = Field(default_factory=dict)
