from .interface import FunctionSignature, InterfaceDefinition, InterfaceFormatError, Parameter
from .interface_resolver import InterfaceResolver, Resolution
from .selector_decoder import DecodedArgument, DecodedCall, SelectorDecoder, format_value, normalize_call_data
from .response_extractor import LlmResponseFields, ResponseExtractor, ResponseMarkers
from .service import AnalysisOutcome, DecodeOutcome, InterpreterService, normalize_address

__all__ = [
    # 接口定义
    "FunctionSignature",
    "InterfaceDefinition",
    "InterfaceFormatError",
    "Parameter",
    # 接口解析
    "InterfaceResolver",
    "Resolution",
    # 选择器解码
    "DecodedArgument",
    "DecodedCall",
    "SelectorDecoder",
    "format_value",
    "normalize_call_data",
    # 回复字段提取
    "LlmResponseFields",
    "ResponseExtractor",
    "ResponseMarkers",
    # 服务
    "AnalysisOutcome",
    "DecodeOutcome",
    "InterpreterService",
    "normalize_address",
]
