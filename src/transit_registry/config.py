"""Configuration system using platformdirs for cross-platform paths."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import platformdirs

APP_NAME = "transit-registry"
APP_AUTHOR = "transit-registry"


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Derived paths
	db_path: Path = field(init=False)
	log_dir: Path = field(init=False)

	# User-configurable
	admin_principal: str = field(default_factory=lambda: os.getenv("USER", "admin"))
	log_level: str = "INFO"

	def __post_init__(self) -> None:
		self.db_path = self.data_dir / "registry.db"
		self.log_dir = self.data_dir / "logs"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)


def _apply_env_overrides(config: Config) -> Config:
	"""Apply TRANSIT_REGISTRY_* environment variable overrides."""
	path_env = {
		"TRANSIT_REGISTRY_CONFIG_DIR": "config_dir",
		"TRANSIT_REGISTRY_DATA_DIR": "data_dir",
	}
	for env_key, attr in path_env.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, Path(val))

	str_env = {
		"TRANSIT_REGISTRY_ADMIN": "admin_principal",
		"TRANSIT_REGISTRY_LOG_LEVEL": "log_level",
	}
	for env_key, attr in str_env.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, val)

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
		if hasattr(config, key):
			if key in path_fields:
				setattr(config, key, Path(os.path.expanduser(val)))
			else:
				setattr(config, key, val)

	config.__post_init__()
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	config = Config()
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
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
