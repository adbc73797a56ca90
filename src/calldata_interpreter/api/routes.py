from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from calldata_interpreter import __version__
from calldata_interpreter.analyzer import DecodeOutcome, InterpreterService
from calldata_interpreter.app_logging import Tracer, bind_context, clear_context, get_logger
from calldata_interpreter.errors import CLIENT_ERRORS, InterpreterError

from .schemas import (
    AnalysisRequest,
    AnalysisResponse,
    ArgumentInfo,
    DecodeRequest,
    DecodeResponse,
    HealthResponse,
)

logger = get_logger(__name__)
router = APIRouter()


def get_service(request: Request) -> InterpreterService:
    """获取解释服务实例"""
    return request.app.state.service


def _status_code_for(error: InterpreterError) -> int:
    """输入错误返回 400，其余返回 500"""
    return 400 if isinstance(error, CLIENT_ERRORS) else 500


def _arguments(outcome: DecodeOutcome) -> list[ArgumentInfo]:
    return [ArgumentInfo(**arg.to_dict()) for arg in outcome.call.arguments]


@router.get("/healthz", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """健康检查"""
    dependencies = get_service(request).health()
    status = "ok"
    if dependencies.get("reasoning") != "configured" or dependencies.get("prompt_config") != "loaded":
        status = "degraded"
    return HealthResponse(status=status, version=__version__, dependencies=dependencies)


@router.post("/decode", response_model=DecodeResponse)
async def decode_calldata(req: DecodeRequest, request: Request) -> JSONResponse:
    """解码 calldata"""
    tracer = Tracer(contract_address=req.contract_address)
    bind_context(trace_id=tracer.trace_id, contract_address=req.contract_address)
    logger.info("decode_request_received")

    try:
        outcome = await get_service(request).decode(req.contract_address, req.call_data, tracer=tracer)
        response = DecodeResponse(
            status="success",
            function_name=outcome.call.function_name,
            signature=outcome.call.signature,
            selector=outcome.call.selector,
            arguments=_arguments(outcome),
            abi=outcome.resolution.definition.abi,
            details="; ".join(outcome.warnings) or None,
            trace_id=tracer.trace_id,
            timings=tracer.get_timings(),
        )
        return JSONResponse(status_code=200, content=response.model_dump())
    except InterpreterError as e:
        status_code = _status_code_for(e)
        if status_code >= 500:
            logger.error("decode_error", kind=e.kind, error=str(e))
        else:
            logger.warning("decode_rejected", kind=e.kind, error=str(e))
        response = DecodeResponse(
            status="error",
            message=e.message,
            details=str(e) if e.details else None,
            error_kind=e.kind,
            trace_id=tracer.trace_id,
            timings=tracer.get_timings(),
        )
        return JSONResponse(status_code=status_code, content=response.model_dump())
    finally:
        clear_context()


@router.post("/analysis", response_model=AnalysisResponse)
async def analyze_calldata(req: AnalysisRequest, request: Request) -> JSONResponse:
    """解码 calldata 并请求 LLM 风险评估"""
    tracer = Tracer(contract_address=req.contract_address)
    bind_context(trace_id=tracer.trace_id, contract_address=req.contract_address)
    logger.info("analysis_request_received")
    service = get_service(request)

    decoded: DecodeOutcome | None = None
    try:
        service.require_analysis_config()
        decoded = await service.decode(req.contract_address, req.call_data, tracer=tracer)
        outcome = await service.assess(decoded, tracer=tracer)
        response = AnalysisResponse(
            status="success",
            function_name=decoded.call.function_name,
            arguments=_arguments(decoded),
            risk_level=outcome.risk_level,
            explanation=outcome.explanation,
            message="Risk analysis completed",
            details="; ".join(decoded.warnings) or None,
            trace_id=tracer.trace_id,
            timings=tracer.get_timings(),
        )
        return JSONResponse(status_code=200, content=response.model_dump())
    except InterpreterError as e:
        status_code = _status_code_for(e)
        if status_code >= 500:
            logger.error("analysis_error", kind=e.kind, error=str(e))
        else:
            logger.warning("analysis_rejected", kind=e.kind, error=str(e))
        # 解码成功后的失败仍返回函数名与参数
        response = AnalysisResponse(
            status="error",
            function_name=decoded.call.function_name if decoded else None,
            arguments=_arguments(decoded) if decoded else None,
            message=e.message,
            details=str(e) if e.details else None,
            error_kind=e.kind,
            trace_id=tracer.trace_id,
            timings=tracer.get_timings(),
        )
        return JSONResponse(status_code=status_code, content=response.model_dump())
    finally:
        clear_context()
