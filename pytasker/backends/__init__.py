"""Backend implementations."""

from .http import HttpBackend
from .memory import MemoryBackend

__all__ = ["HttpBackend", "MemoryBackend"]
