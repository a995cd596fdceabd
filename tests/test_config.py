"""Tests for the configuration system."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from openwork.config import Config, _apply_env_overrides, load_config
from openwork.errors import ConfigurationError
from openwork.providers.types import AgentMode, ProviderId

CLEAN_ENV = {
	"ANTHROPIC_API_KEY": "",
	"OPENAI_API_KEY": "",
	"GEMINI_API_KEY": "",
	"GOOGLE_API_KEY": "",
	"OLLAMA_HOST": "",
	"OPENWORK_PROVIDER": "",
	"OPENWORK_MODEL": "",
	"OPENWORK_MODE": "",
}


def test_config_defaults():
	"""Config should have sensible defaults."""
	config = Config()
	assert config.config_dir.is_absolute()
	assert config.data_dir.is_absolute()
	assert config.log_dir == config.data_dir / "logs"
	assert config.provider == "claude"
	assert config.mode == "plan"
	assert config.max_tokens == 4096


def test_config_env_overrides():
	"""Environment variables should override defaults."""
	config = Config()
	with patch.dict(os.environ, {
		"OPENWORK_DATA_DIR": "/tmp/test-data",
		"OPENWORK_CONFIG_DIR": "/tmp/test-config",
		"OPENWORK_PROVIDER": "openai",
		"OPENWORK_MODEL": "gpt-5",
		"OPENWORK_PLAN_APPROVAL": "yes",
		"OPENWORK_MAX_TOKENS": "1024",
		"OPENWORK_TEMPERATURE": "0.1",
	}):
		config = _apply_env_overrides(config)
		assert config.data_dir == Path("/tmp/test-data")
		assert config.config_dir == Path("/tmp/test-config")
		# Derived paths should be recomputed
		assert config.log_dir == Path("/tmp/test-data/logs")
		assert config.provider == "openai"
		assert config.model == "gpt-5"
		assert config.plan_approval_required is True
		assert config.max_tokens == 1024
		assert config.temperature == 0.1


def test_config_ensure_dirs(tmp_path: Path):
	"""ensure_dirs should create all required directories."""
	config = Config(
		config_dir=tmp_path / "config",
		data_dir=tmp_path / "data",
	)
	assert not config.config_dir.exists()

	config.ensure_dirs()

	assert config.config_dir.exists()
	assert config.data_dir.exists()
	assert config.log_dir.exists()


def test_load_config_reads_toml(tmp_path: Path):
	"""config.toml in the config dir is applied, and env vars win over it."""
	config_dir = tmp_path / "config"
	config_dir.mkdir()
	(config_dir / "config.toml").write_text(
		'provider = "gemini"\nmode = "auto"\nmax_tokens = 2048\n'
	)
	env = dict(CLEAN_ENV, OPENWORK_CONFIG_DIR=str(config_dir), OPENWORK_DATA_DIR=str(tmp_path / "data"))

	with patch.dict(os.environ, env):
		config = load_config(dotenv=False)
		assert config.provider == "gemini"
		assert config.mode == "auto"
		assert config.max_tokens == 2048
		assert config.data_dir.exists()

	with patch.dict(os.environ, dict(env, OPENWORK_MODE="execute")):
		assert load_config(dotenv=False).mode == "execute"


def test_load_config_rejects_unknown_provider(tmp_path: Path):
	env = dict(
		CLEAN_ENV,
		OPENWORK_CONFIG_DIR=str(tmp_path / "config"),
		OPENWORK_DATA_DIR=str(tmp_path / "data"),
		OPENWORK_PROVIDER="watson",
	)
	with patch.dict(os.environ, env):
		with pytest.raises(ConfigurationError):
			load_config(dotenv=False)


def test_credential_lookup():
	config = Config()
	with patch.dict(os.environ, dict(CLEAN_ENV, GOOGLE_API_KEY="AIza-fallback")):
		assert config.credential_for("gemini") == "AIza-fallback"
		assert config.credential_for(ProviderId.CLAUDE) is None

	with patch.dict(os.environ, dict(CLEAN_ENV, GEMINI_API_KEY="AIza-primary", GOOGLE_API_KEY="AIza-fallback")):
		assert config.credential_for("gemini") == "AIza-primary"


def test_adapter_config_for_cloud_provider():
	config = Config(model="claude-opus-4-5-20251101", mode="execute", plan_approval_required=True)
	with patch.dict(os.environ, dict(CLEAN_ENV, ANTHROPIC_API_KEY="sk-ant-123")):
		adapter_config = config.adapter_config()

	assert adapter_config.api_key == "sk-ant-123"
	assert adapter_config.host is None
	assert adapter_config.model == "claude-opus-4-5-20251101"
	assert adapter_config.mode == AgentMode.EXECUTE
	assert adapter_config.plan_approval_required is True


def test_adapter_config_for_other_provider_uses_its_default_model():
	config = Config(model="claude-opus-4-5-20251101")
	with patch.dict(os.environ, CLEAN_ENV):
		assert config.adapter_config("openai").model is None


def test_adapter_config_for_ollama_uses_host():
	config = Config(provider="ollama", ollama_host="http://gpu-box:11434")
	with patch.dict(os.environ, CLEAN_ENV):
		adapter_config = config.adapter_config()

	assert adapter_config.api_key is None
	assert adapter_config.host == "http://gpu-box:11434"


def test_session_config():
	config = Config(provider="openai", model="gpt-5", temperature=0.3)
	with patch.dict(os.environ, dict(CLEAN_ENV, OPENAI_API_KEY="sk-openai")):
		session_config = config.session_config()

	assert session_config.provider == ProviderId.OPENAI
	assert session_config.model == "gpt-5"
	assert session_config.api_key == "sk-openai"
	assert session_config.temperature == 0.3
