"""
Configuration Service

Loads agent, model and remote service settings from a JSON file
(``config/agentloop.json`` by default) with environment overrides read
through python-dotenv. Remote services use the ``mcpServers`` layout:

    {
      "llm": {"model": "gpt-4o-mini"},
      "agent": {"max_steps": 10},
      "mcpServers": {
        "search": {"type": "http", "url": "http://localhost:8931/mcp", "priority": 2},
        "git": {"type": "stdio", "command": "uvx", "args": ["mcp-server-git"]}
      }
    }
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join("config", "agentloop.json")
SUPPORTED_SERVICE_TYPES = ("stdio", "http")


class LLMSettings(BaseModel):
    """Model selection for the LLM worker"""
    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None
    max_tokens: Optional[int] = Field(None, gt=0)
    temperature: Optional[float] = Field(None, ge=0, le=2)


class AgentSettings(BaseModel):
    """Turn limits and built-in tool defaults"""
    max_steps: int = Field(10, gt=0)
    duplicate_threshold: int = Field(2, gt=0)
    retention_floor: int = Field(5, ge=0)
    bash_timeout_ms: int = Field(120_000, gt=0)
    workspace_root: Optional[str] = None
    system_prompt: Optional[str] = None


class ServiceConfig(BaseModel):
    """One remote capability service"""
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    type: str = "stdio"
    command: Optional[str] = None
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)
    url: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    enabled: bool = True
    timeout: float = Field(30.0, gt=0, description="Seconds")
    priority: int = 1
    description: str = ""
    capabilities: List[str] = Field(default_factory=list)

    @field_validator("type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        return (v or "stdio").lower()

    @model_validator(mode="after")
    def check_transport_fields(self) -> "ServiceConfig":
        if self.type == "http" and not self.url:
            raise ValueError(f"service '{self.name}' of type http requires a url")
        if self.type == "stdio" and not self.command:
            raise ValueError(f"service '{self.name}' of type stdio requires a command")
        return self


class AppConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    llm: LLMSettings = Field(default_factory=LLMSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    services: Dict[str, ServiceConfig] = Field(default_factory=dict, alias="mcpServers")
    # Service entries that failed validation, name -> reason
    invalid_services: Dict[str, str] = Field(default_factory=dict, exclude=True)


class ConfigService:
    """
    Service for loading agentloop configuration

    Features:
    - Load configuration from a JSON file
    - Fall back to defaults when the file is missing or invalid
    - Keep invalid service entries aside instead of rejecting the whole file
    - Apply environment overrides (AGENT_MODEL, AGENT_MAX_STEPS, AGENT_WORKSPACE_ROOT)
    """

    def __init__(self, config_path: Optional[str] = None):
        load_dotenv(override=True)
        self.config_path = Path(config_path or os.getenv("AGENT_CONFIG_PATH") or DEFAULT_CONFIG_PATH)
        self._config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """Load configuration from file"""
        config = self._read_file()
        self._apply_env_overrides(config)
        self._config = config
        return config

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    def _read_file(self) -> AppConfig:
        if not self.config_path.exists():
            logger.warning(f"Config file not found: {self.config_path}; using defaults")
            return self._get_fallback_config()
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            # Services are checked one by one so a bad entry cannot take the rest down
            raw_services = raw.pop("mcpServers", None) or {}
            config = AppConfig.model_validate(raw)
            config.services, config.invalid_services = self._load_services(raw_services)
            logger.debug(f"Loaded config from {self.config_path}")
            return config
        except (OSError, json.JSONDecodeError, ValidationError, AttributeError) as e:
            logger.error(f"Error loading config {self.config_path}: {e}")
            return self._get_fallback_config()

    def _load_services(self, raw_services: Any) -> Tuple[Dict[str, ServiceConfig], Dict[str, str]]:
        services: Dict[str, ServiceConfig] = {}
        invalid: Dict[str, str] = {}
        if not isinstance(raw_services, dict):
            logger.error(f"Ignoring mcpServers in {self.config_path}: expected an object")
            return services, invalid

        for key, entry in raw_services.items():
            if isinstance(entry, dict):
                entry = {"name": key, **entry}
            try:
                services[key] = ServiceConfig.model_validate(entry)
            except ValidationError as e:
                if isinstance(entry, dict) and entry.get("enabled") is False:
                    logger.info(f"Skipping invalid disabled service {key}")
                    continue
                reason = "; ".join(err.get("msg", "invalid value") for err in e.errors())
                logger.error(f"Invalid service {key} in {self.config_path}: {reason}")
                invalid[key] = reason
        return services, invalid

    def _get_fallback_config(self) -> AppConfig:
        """Fallback configuration when file loading fails"""
        return AppConfig()

    def _apply_env_overrides(self, config: AppConfig) -> None:
        model = os.getenv("AGENT_MODEL")
        if model:
            config.llm.model = model
        base_url = os.getenv("OPENAI_BASE_URL")
        if base_url and not config.llm.base_url:
            config.llm.base_url = base_url
        max_steps = os.getenv("AGENT_MAX_STEPS")
        if max_steps:
            try:
                config.agent.max_steps = max(1, int(max_steps))
            except ValueError:
                logger.warning(f"Ignoring invalid AGENT_MAX_STEPS={max_steps!r}")
        workspace_root = os.getenv("AGENT_WORKSPACE_ROOT")
        if workspace_root:
            config.agent.workspace_root = workspace_root

    def get_service_configs(self) -> List[ServiceConfig]:
        """Enabled service configs, highest priority first"""
        services = []
        for key, service in self.config.services.items():
            if not service.name:
                service.name = key
            if not service.enabled:
                logger.info(f"Service {service.name} is disabled in config")
                continue
            services.append(service)
        return sorted(services, key=lambda s: s.priority, reverse=True)

    def get_invalid_services(self) -> Dict[str, str]:
        """Configured services that could not be parsed, with the reason"""
        return dict(self.config.invalid_services)
