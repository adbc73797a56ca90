from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from calldata_interpreter import __version__
from calldata_interpreter.analyzer import InterpreterService
from calldata_interpreter.api import router
from calldata_interpreter.app_logging import configure_logging, get_logger
from calldata_interpreter.config import Settings, get_settings, load_prompt_config
from calldata_interpreter.errors import CLIENT_ERRORS, ConfigMissing, InterpreterError

logger = get_logger(__name__)


def build_service(settings: Settings) -> InterpreterService:
    """根据配置构建解释服务"""
    try:
        prompt_config = load_prompt_config(settings.prompt_config_path)
        logger.info("prompt_config_loaded", model=prompt_config.model_settings.model)
    except ConfigMissing as e:
        # 缺少提示词配置时仅 /analysis 不可用
        logger.error("prompt_config_error", error=str(e))
        prompt_config = None

    if not settings.reasoning_api_key:
        logger.warning("reasoning_api_key_missing")

    return InterpreterService.from_settings(settings, prompt_config=prompt_config)


def create_app(settings: Settings | None = None, service: InterpreterService | None = None) -> FastAPI:
    """创建 FastAPI 应用"""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """应用生命周期管理"""
        configure_logging(settings.log_level, settings.log_format)
        logger.info("app_starting", env=settings.app_env, host=settings.host, port=settings.port)

        app.state.settings = settings
        app.state.service = service or build_service(settings)
        logger.info("app_started", abi_cache_dir=settings.abi_cache_dir)

        yield

        logger.info("app_stopped")

    app = FastAPI(
        title="Calldata Interpreter",
        description="Contract call-data decoding and risk analysis service",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS 中间件（前端直接从浏览器调用）
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 异常处理：路由未捕获的解释器错误按 kind 映射状态码
    @app.exception_handler(InterpreterError)
    async def interpreter_error_handler(request: Request, exc: InterpreterError):
        status_code = 400 if isinstance(exc, CLIENT_ERRORS) else 500
        logger.error("interpreter_error", path=request.url.path, kind=exc.kind, error=str(exc))
        return JSONResponse(
            status_code=status_code,
            content={"status": "error", "error_kind": exc.kind, "message": exc.message, "details": str(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": "Internal server error",
                "details": str(exc),
            },
        )

    app.include_router(router)
    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "calldata_interpreter.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.app_env == "local",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
