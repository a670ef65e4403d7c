from .config_service import AppConfig, ConfigService, ServiceConfig

__all__ = ["AppConfig", "ConfigService", "ServiceConfig"]
