from .memory import Memory, DEFAULT_RETENTION_FLOOR

__all__ = ["Memory", "DEFAULT_RETENTION_FLOOR"]
