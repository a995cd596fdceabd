"""Configuration system using platformdirs for cross-platform paths."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import platformdirs
from dotenv import load_dotenv

from .errors import ConfigurationError
from .orchestrator.session import SessionConfig
from .providers.types import AdapterConfig, AgentMode, ProviderId

APP_NAME = "openwork"

# First set variable wins
CREDENTIAL_ENV = {
	ProviderId.CLAUDE: ("ANTHROPIC_API_KEY",),
	ProviderId.OPENAI: ("OPENAI_API_KEY",),
	ProviderId.GEMINI: ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
	ProviderId.OLLAMA: ("OLLAMA_HOST",),
}


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Derived paths
	log_dir: Path = field(init=False)

	# User-configurable
	provider: str = ProviderId.CLAUDE.value
	model: Optional[str] = None
	mode: str = AgentMode.PLAN.value
	plan_approval_required: bool = False
	max_tokens: int = 4096
	temperature: float = 0.7
	ollama_host: Optional[str] = None
	log_level: str = "INFO"

	def __post_init__(self) -> None:
		self.log_dir = self.data_dir / "logs"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)

	def credential_for(self, provider: Union[ProviderId, str]) -> Optional[str]:
		"""API key (or host, for Ollama) for a provider, from the environment."""
		provider = ProviderId(provider)
		if provider == ProviderId.OLLAMA and self.ollama_host:
			return self.ollama_host
		for env_key in CREDENTIAL_ENV[provider]:
			val = os.getenv(env_key)
			if val:
				return val
		return None

	def adapter_config(self, provider: Optional[Union[ProviderId, str]] = None) -> AdapterConfig:
		"""AdapterConfig for a provider (default: the configured one)."""
		provider = ProviderId(provider or self.provider)
		credential = self.credential_for(provider)
		is_local = provider == ProviderId.OLLAMA
		return AdapterConfig(
			api_key=None if is_local else credential,
			host=credential if is_local else None,
			model=self.model if provider == ProviderId(self.provider) else None,
			max_tokens=self.max_tokens,
			temperature=self.temperature,
			mode=AgentMode(self.mode),
			plan_approval_required=self.plan_approval_required,
		)

	def session_config(self) -> SessionConfig:
		provider = ProviderId(self.provider)
		data = {
			"provider": provider,
			"api_key": self.credential_for(provider) if provider != ProviderId.OLLAMA else None,
			"base_url": self.credential_for(provider) if provider == ProviderId.OLLAMA else None,
			"max_tokens": self.max_tokens,
			"temperature": self.temperature,
		}
		if self.model:
			data["model"] = self.model
		return SessionConfig(**data)


def _apply_env_overrides(config: Config) -> Config:
	"""Apply OPENWORK_* environment variable overrides."""
	path_map = {
		"OPENWORK_CONFIG_DIR": "config_dir",
		"OPENWORK_DATA_DIR": "data_dir",
	}
	for env_key, attr in path_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, Path(val))

	value_map = {
		"OPENWORK_PROVIDER": ("provider", str),
		"OPENWORK_MODEL": ("model", str),
		"OPENWORK_MODE": ("mode", str),
		"OPENWORK_PLAN_APPROVAL": ("plan_approval_required", lambda v: v.lower() in ("1", "true", "yes", "on")),
		"OPENWORK_MAX_TOKENS": ("max_tokens", int),
		"OPENWORK_TEMPERATURE": ("temperature", float),
		"OPENWORK_LOG_LEVEL": ("log_level", str),
	}
	for env_key, (attr, convert) in value_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, convert(val))

	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	path_fields = {"config_dir", "data_dir"}
	for key, val in data.items():
		if hasattr(config, key) and key != "log_dir":
			if key in path_fields:
				setattr(config, key, Path(os.path.expanduser(val)))
			else:
				setattr(config, key, val)

	# Recompute derived paths after toml overrides
	config.__post_init__()
	return config


def _validate(config: Config) -> Config:
	try:
		ProviderId(config.provider)
		AgentMode(config.mode)
	except ValueError as e:
		raise ConfigurationError(f"Invalid configuration: {e}") from e
	return config


def load_config(dotenv: bool = True) -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	if dotenv:
		load_dotenv()
	config = Config()
	# config.toml lives in the overridden config dir when one is set
	config_dir = os.getenv("OPENWORK_CONFIG_DIR")
	if config_dir:
		config.config_dir = Path(config_dir)
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	config = _validate(config)
	config.ensure_dirs()
	return config


# Singleton
_config: Config | None = None


def get_config() -> Config:
	"""Get or create the global config instance."""
	global _config
	if _config is None:
		_config = load_config()
	return _config
