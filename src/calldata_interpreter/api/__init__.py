from .routes import router
from .schemas import (
    AnalysisRequest,
    AnalysisResponse,
    ArgumentInfo,
    DecodeRequest,
    DecodeResponse,
    HealthResponse,
)

__all__ = [
    "router",
    "AnalysisRequest",
    "AnalysisResponse",
    "ArgumentInfo",
    "DecodeRequest",
    "DecodeResponse",
    "HealthResponse",
]
