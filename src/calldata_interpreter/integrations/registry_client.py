from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from calldata_interpreter.app_logging import get_logger
from calldata_interpreter.errors import (
    InvalidResponseShape,
    NetworkError,
    RegistryError,
    TimedOut,
)

logger = get_logger(__name__)


class RegistryClient:
    """合约接口注册表客户端（Etherscan 兼容 API）"""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        rate_limit_per_min: int = 0,
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
        self._last_request_time = 0.0
        self._request_interval = 60.0 / rate_limit_per_min if rate_limit_per_min > 0 else 0

    async def _rate_limit(self) -> None:
        """请求限流"""
        if self._request_interval > 0:
            elapsed = time.time() - self._last_request_time
            if elapsed < self._request_interval:
                await asyncio.sleep(self._request_interval - elapsed)
        self._last_request_time = time.time()

    async def _request(self, params: dict[str, Any]) -> dict[str, Any]:
        """发送请求（传输失败按 max_attempts 重试）"""
        if self.api_key:
            params = {**params, "apikey": self.api_key}

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_backoff_s, max=10),
            retry=retry_if_exception_type(NetworkError),
            reraise=True,
        )
        return await retrying(self._send, params)

    async def _send(self, params: dict[str, Any]) -> dict[str, Any]:
        await self._rate_limit()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error("registry_timeout", error=str(e))
            raise TimedOut(f"Registry request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            logger.error("registry_request_error", error=str(e))
            raise NetworkError(f"Registry request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseShape(
                "Registry response is not JSON",
                {"body": response.text[:500]},
            ) from e

        if not isinstance(data, dict):
            raise InvalidResponseShape("Registry response is not a JSON object", {"body": response.text[:500]})
        return data

    async def get_abi(self, contract_address: str) -> str:
        """获取合约 ABI，返回注册表给出的原始 ABI JSON 文本"""
        logger.info("registry_get_abi", address=contract_address)

        data = await self._request({
            "module": "contract",
            "action": "getabi",
            "address": contract_address,
        })

        # status 为 "1" 表示成功，其他值时 message 为错误信息
        status = data.get("status")
        if status != "1":
            message = data.get("message") or "Unknown error"
            logger.warning("registry_error", address=contract_address, status=status, message=message)
            raise RegistryError(str(message), {"status": status, "result": data.get("result")})

        result = data.get("result")
        if not isinstance(result, str):
            raise InvalidResponseShape("Registry result is not a string", {"result": result})

        try:
            json.loads(result)
        except json.JSONDecodeError as e:
            raise InvalidResponseShape("Registry result is not valid JSON", {"result": result[:500]}) from e

        logger.info("registry_abi_fetched", address=contract_address, size=len(result))
        return result
