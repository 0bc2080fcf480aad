from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	DATABASE_URL: str = 'sqlite+aiosqlite:///./exchange_rates.db'

	REDIS_URL: str = 'redis://localhost:6379'
	THROTTLE_BACKEND: Literal['redis', 'memory'] = 'redis'

	CURRENCYLAYER_API_KEY: str = ''
	CURRENCYLAYER_BASE_URL: str = 'http://api.currencylayer.com'
	PROVIDER_TIMEOUT: int = 10

	# Bandwidth control
	RATES_RESOURCE_KEY: str = 'conversion_rates'
	BANDWIDTH_COOLDOWN_SECONDS: int = 30 * 60
	BLOCK_WHILE_FETCHING: bool = False

	# Application
	APP_NAME: str = 'Currency Exchange API'

	# Logging
	LOG_LEVEL: str = 'INFO'
	LOG_DIRECTORY: str | None = None
	JSON_LOGS: bool = False

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')


@lru_cache
def get_settings() -> Settings:
	return Settings()
