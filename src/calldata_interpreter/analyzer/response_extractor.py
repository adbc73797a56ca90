"""
LLM 自由文本字段提取

风险等级：按换行符 LF 分行，第一条以 risk_level_prefix 开头的行，取第一个冒号之后、下一个冒号之前的片段并去除空白。
解释：explanation_prefix 在全文中第一次出现的位置之后直到文本末尾（紧随其后的冒号被跳过），去除空白。
只采用全文子串查找这一种解释提取方式，不做按行匹配的回退。

提取永不抛出异常，找不到标记时对应字段为 None。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from calldata_interpreter.config import ResponseFormat


@dataclass(frozen=True)
class ResponseMarkers:
    """字段标记"""
    risk_level_prefix: str
    explanation_prefix: str

    @classmethod
    def from_response_format(cls, response_format: ResponseFormat) -> ResponseMarkers:
        return cls(
            risk_level_prefix=response_format.risk_level_prefix,
            explanation_prefix=response_format.explanation_prefix,
        )


@dataclass(frozen=True)
class LlmResponseFields:
    """从 LLM 回复中提取的字段"""
    risk_level: str | None = None
    explanation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"risk_level": self.risk_level, "explanation": self.explanation}


class ResponseExtractor:
    """LLM 回复字段提取器"""

    def extract(self, text: str | None, markers: ResponseMarkers) -> LlmResponseFields:
        if not text:
            return LlmResponseFields()
        return LlmResponseFields(
            risk_level=self.extract_risk_level(text, markers.risk_level_prefix),
            explanation=self.extract_explanation(text, markers.explanation_prefix),
        )

    @staticmethod
    def extract_risk_level(text: str, prefix: str) -> str | None:
        # 仅按 \n 分行（行尾 \r 去掉），其他 Unicode 换行符不视为行边界
        for line in text.split("\n"):
            line = line.removesuffix("\r")
            if not line.startswith(prefix):
                continue
            parts = line.split(":")
            if len(parts) < 2:
                return None
            return parts[1].strip()
        return None

    @staticmethod
    def extract_explanation(text: str, prefix: str) -> str | None:
        start = text.find(prefix)
        if start < 0:
            return None
        rest = text[start + len(prefix):]
        if rest.startswith(":"):
            rest = rest[1:]
        return rest.strip()
