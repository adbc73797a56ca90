from .registry_client import RegistryClient

__all__ = ["RegistryClient"]
