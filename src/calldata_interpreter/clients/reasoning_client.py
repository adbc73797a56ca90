from __future__ import annotations

from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from calldata_interpreter.app_logging import get_logger
from calldata_interpreter.errors import (
    ConfigMissing,
    InvalidResponseShape,
    NetworkError,
    ReasoningServiceError,
    TimedOut,
)

logger = get_logger(__name__)


class ReasoningClient:
    """推理服务客户端（OpenAI 兼容 chat completions）"""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 90.0,
        max_attempts: int = 1,
        retry_backoff_s: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff_s = retry_backoff_s
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @staticmethod
    def build_request_body(model: str, system_message: str, user_prompt: str, stream: bool = False) -> dict[str, Any]:
        """构建请求体"""
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": system_message},
                {"role": "user", "content": user_prompt},
            ],
            "stream": stream,
        }

    async def complete(self, model: str, system_message: str, user_prompt: str, stream: bool = False) -> str:
        """调用推理服务，返回 choices[0].message.content"""
        if not self.is_configured:
            raise ConfigMissing("DEEPSEEK_API_KEY", {"hint": "Set DEEPSEEK_API_KEY in the environment or .env file"})

        body = self.build_request_body(model, system_message, user_prompt, stream)
        logger.info("reasoning_request", model=model, prompt_chars=len(user_prompt))

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_backoff_s, max=10),
            retry=retry_if_exception_type(NetworkError),
            reraise=True,
        )
        data = await retrying(self._post, body)

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise InvalidResponseShape("Reasoning response has no choices", {"body": str(data)[:500]})

        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            logger.warning("reasoning_empty_content", body=str(data)[:200])
            content = ""

        logger.info("reasoning_response", content_chars=len(content))
        logger.debug("reasoning_content", content=content)
        return content

    async def _post(self, body: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=headers,
                    json=body,
                )
        except httpx.TimeoutException as e:
            logger.error("reasoning_timeout", error=str(e))
            raise TimedOut(f"Reasoning request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error("reasoning_request_error", error=str(e))
            raise NetworkError(f"Reasoning request failed: {e}") from e

        if not response.is_success:
            logger.error("reasoning_error", status_code=response.status_code, error=response.text[:500])
            raise ReasoningServiceError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseShape("Reasoning response is not JSON", {"body": response.text[:500]}) from e

        if not isinstance(data, dict):
            raise InvalidResponseShape("Reasoning response is not a JSON object", {"body": response.text[:500]})
        return data
