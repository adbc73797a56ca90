"""
合约接口解析

地址 -> InterfaceDefinition：先查本地文件缓存，未命中时请求注册表并写入缓存。
同一地址的并发未命中请求共享一次注册表调用。
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Literal

from calldata_interpreter.app_logging import get_logger
from calldata_interpreter.errors import CacheCorrupt, CacheWriteError, InvalidResponseShape
from calldata_interpreter.integrations.registry_client import RegistryClient
from calldata_interpreter.storage.abi_cache import AbiFileCache

from .interface import InterfaceDefinition, InterfaceFormatError

logger = get_logger(__name__)


@dataclass(frozen=True)
class Resolution:
    """接口解析结果"""
    address: str
    definition: InterfaceDefinition
    raw: str
    source: Literal["cache", "registry"]
    cache_error: CacheWriteError | None = None


class InterfaceResolver:
    """合约接口解析器"""

    def __init__(self, registry: RegistryClient, cache: AbiFileCache):
        self.registry = registry
        self.cache = cache
        self._inflight: dict[str, asyncio.Task[Resolution]] = {}

    async def resolve(self, contract_address: str) -> InterfaceDefinition:
        """解析合约接口定义"""
        resolution = await self.resolve_detailed(contract_address)
        return resolution.definition

    async def resolve_detailed(self, contract_address: str) -> Resolution:
        """解析合约接口，附带来源与缓存写入诊断"""
        cached = await self._load_cached(contract_address)
        if cached is not None:
            return cached

        # 注册表请求在独立任务中执行，任一调用方被取消都不会取消共享的请求
        key = self.cache.cache_key(contract_address)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._resolve_miss(contract_address))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        else:
            logger.debug("registry_fetch_joined", address=contract_address)
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[Resolution]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # 所有调用方都已取消时，标记异常已被读取
        if not task.cancelled():
            task.exception()

    async def _resolve_miss(self, contract_address: str) -> Resolution:
        # 任务启动前可能已有请求完成写入
        resolution = await self._load_cached(contract_address)
        if resolution is None:
            resolution = await self._fetch_and_store(contract_address)
        return resolution

    async def _load_cached(self, contract_address: str) -> Resolution | None:
        raw = await asyncio.to_thread(self.cache.load, contract_address)
        if raw is None:
            return None

        path = self.cache.path_for(contract_address)
        try:
            definition = InterfaceDefinition.from_json(raw)
        except InterfaceFormatError as e:
            logger.error("abi_cache_corrupt", address=contract_address, path=str(path), error=str(e))
            raise CacheCorrupt(str(path), str(e)) from e

        logger.info("abi_cache_hit", address=contract_address, functions=len(definition))
        return Resolution(address=contract_address, definition=definition, raw=raw, source="cache")

    async def _fetch_and_store(self, contract_address: str) -> Resolution:
        logger.info("abi_cache_miss", address=contract_address)
        raw = await self.registry.get_abi(contract_address)

        try:
            definition = InterfaceDefinition.from_json(raw)
        except InterfaceFormatError as e:
            raise InvalidResponseShape(f"Registry returned an unusable interface: {e}", {"result": raw[:500]}) from e

        cache_error: CacheWriteError | None = None
        try:
            await asyncio.to_thread(self.cache.store, contract_address, raw)
        except CacheWriteError as e:
            # 缓存失败不影响本次解析结果
            logger.warning("cache_write_failed", address=contract_address, path=e.path, error=str(e))
            cache_error = e

        return Resolution(
            address=contract_address,
            definition=definition,
            raw=raw,
            source="registry",
            cache_error=cache_error,
        )
