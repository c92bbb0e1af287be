# Session repository adapters
from .http_store import HttpSessionRepository
from .memory_store import InMemorySessionRepository
from .yaml_store import YamlSessionRepository

__all__ = ["HttpSessionRepository", "InMemorySessionRepository", "YamlSessionRepository"]
