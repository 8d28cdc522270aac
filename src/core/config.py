"""
Application configuration for the Duty Log service.

Provides environment-aware settings with conservative defaults. Paths, the
Discord channel and the ingestion page size are configurable so nothing is
hard-coded in the engine.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
	"""
	Global configuration with environment overrides.

	Notes:
	- cache_file and blacklist_file are resolved relative to data_dir.
	- page_size is capped at 100, the channel-history limit of the platform.
	- purge_match selects how remove-admin picks entries to delete:
	  'substring' matches "Admin: <name>" anywhere in the text,
	  'exact' only matches entries whose subject line equals the name.
	"""

	model_config = SettingsConfigDict(env_prefix="DUTY_", env_file=".env", extra="ignore")

	log_level: str = Field("INFO", description="Default logging level")
	logs_dir: Path = Field(Path("logs"), description="Directory for log files")

	data_dir: Path = Field(Path("data"), description="Directory for persisted documents")
	cache_file: str = Field("cache.json", description="Entries document name")
	blacklist_file: str = Field("blacklist.json", description="Blacklist document name")

	discord_token: Optional[str] = Field(None, description="Bot token for the message source")
	channel_id: Optional[str] = Field(None, description="Channel holding the duty logs")
	discord_api_base: str = Field("https://discord.com/api/v10")
	request_timeout: float = Field(10.0, gt=0.0, description="HTTP timeout in seconds")
	page_size: int = Field(100, ge=1, le=100)

	purge_match: Literal["substring", "exact"] = "substring"

	host: str = "0.0.0.0"
	port: int = Field(3000, ge=0, le=65535)

	def model_post_init(self, __context: object) -> None:
		self.logs_dir.mkdir(parents=True, exist_ok=True)

	@property
	def cache_path(self) -> Path:
		return self.data_dir / self.cache_file

	@property
	def blacklist_path(self) -> Path:
		return self.data_dir / self.blacklist_file


config = Config()
