from .reasoning_client import ReasoningClient

__all__ = ["ReasoningClient"]
