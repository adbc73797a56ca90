from .abi_cache import AbiFileCache

__all__ = ["AbiFileCache"]
