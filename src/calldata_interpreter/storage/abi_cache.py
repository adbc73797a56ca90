from __future__ import annotations

import os
import tempfile
from pathlib import Path

from calldata_interpreter.app_logging import get_logger
from calldata_interpreter.errors import CacheCorrupt, CacheWriteError

logger = get_logger(__name__)


class AbiFileCache:
    """ABI 本地文件缓存（每个合约地址一个 JSON 文件）

    文件内容为注册表返回的原始 ABI 文本，逐字节保存；条目一旦写入不再更新或失效。
    """

    def __init__(self, cache_dir: str | Path = "ABI"):
        self.cache_dir = Path(cache_dir)

    @staticmethod
    def cache_key(contract_address: str) -> str:
        """生成缓存 key（小写地址）"""
        return contract_address.strip().lower()

    def path_for(self, contract_address: str) -> Path:
        return self.cache_dir / f"{self.cache_key(contract_address)}.json"

    def ensure_dir(self) -> None:
        """确保缓存目录存在（幂等）"""
        if not self.cache_dir.exists():
            logger.info("abi_cache_dir_created", path=str(self.cache_dir))
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def exists(self, contract_address: str) -> bool:
        return self.path_for(contract_address).is_file()

    def load(self, contract_address: str) -> str | None:
        """读取缓存的原始 ABI 文本，未命中返回 None"""
        path = self.path_for(contract_address)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheCorrupt(str(path), f"unreadable: {e}") from e

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CacheCorrupt(str(path), f"not utf-8: {e}") from e

    def store(self, contract_address: str, raw_abi: str) -> Path:
        """原子写入缓存（临时文件 + rename）"""
        path = self.path_for(contract_address)
        tmp_name: str | None = None
        try:
            self.ensure_dir()
            fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=".abi-", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(raw_abi.encode("utf-8"))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise CacheWriteError(str(path), str(e)) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

        logger.info("abi_cache_saved", path=str(path))
        return path
