"""Configuration management for flowdeck.

Loads settings from a YAML configuration file with environment variable
overrides for sensitive values (API keys). Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/flowdeck.yaml")


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    static_dir: str | None = Field(
        default=None, description="Directory with the browser console assets"
    )


class ExecutionConfig(BaseModel):
    shell: str = Field(default="/bin/bash")
    workspace: str = Field(default=".", description="Default working directory")
    domain_env: dict[str, str] = Field(
        default_factory=lambda: {
            "NODE_ENV": "development",
            "SERVICE_NAME": "flowdeck-service",
        },
        description="Environment overrides applied to domain commands",
    )
    shell_source: str = Field(default="shell")
    domain_source: str = Field(default="claude-flow")
    system_source: str = Field(default="flowdeck")
    warn_markers: list[str] = Field(
        default_factory=lambda: ["npm warn", "yarn warn", "pnpm warn"]
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Default per-command timeout in seconds"
    )
    kill_grace: float = Field(
        default=2.0, ge=0, description="Seconds between SIGTERM and SIGKILL"
    )


class TranslatorConfig(BaseModel):
    domain_command: str = Field(default="npx claude-flow@alpha")
    direct_prefixes: list[str] = Field(default_factory=lambda: ["npx", "npm"])
    version_command: str = Field(default="npx claude-flow@alpha --version")


class InitStepConfig(BaseModel):
    description: str
    command: str | None = Field(
        default=None, description="Shell command whose success completes the step"
    )


class InitializationConfig(BaseModel):
    source: str = Field(default="Installer")
    step_delay: float = Field(default=0.0, ge=0)
    steps: list[InitStepConfig] = Field(
        default_factory=lambda: [
            InitStepConfig(
                description="Checking Node.js environment...",
                command="node --version",
            ),
            InitStepConfig(
                description="Preparing workspace directories...",
                command="mkdir -p projects data logs shared",
            ),
            InitStepConfig(
                description="Installing claude-flow@alpha...",
                command="npm list -g claude-flow@alpha || npm install -g claude-flow@alpha",
            ),
            InitStepConfig(
                description="Initializing claude-flow workspace...",
                command="npx claude-flow@alpha init --force",
            ),
        ]
    )


class AnthropicConfig(BaseModel):
    model: str = Field(default="claude-3-haiku-20240307")
    max_tokens: int = Field(default=10, gt=0)
    timeout: float = Field(default=15.0, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default="logs/flowdeck.log")
    tail_lines: int = Field(default=100, gt=0)


class Settings(BaseSettings):
    """Root configuration for the flowdeck system.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "FLOWDECK_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # API Keys
    anthropic_api_key: SecretStr = Field(default=SecretStr(""))

    # Configuration sections
    server: ServerConfig = Field(default_factory=ServerConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    translator: TranslatorConfig = Field(default_factory=TranslatorConfig)
    initialization: InitializationConfig = Field(default_factory=InitializationConfig)
    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def api_key_configured(self) -> bool:
        return bool(self.anthropic_api_key.get_secret_value())


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    # Load .env file manually for non-prefixed vars
    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    api_key = os.environ.get("ANTHROPIC_API_KEY", "")
    workspace = os.environ.get("WORKSPACE_DIR", "")
    port = os.environ.get("PORT", "")

    if api_key and not yaml_data.get("anthropic_api_key"):
        yaml_data["anthropic_api_key"] = api_key

    if workspace:
        yaml_data.setdefault("execution", {}).setdefault("workspace", workspace)

    if port:
        yaml_data.setdefault("server", {}).setdefault("port", port)
