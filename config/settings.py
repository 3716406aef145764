from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	DATABASE_URL: str = 'sqlite+aiosqlite:///./rate_graph.db'

	REDIS_URL: str = 'redis://localhost:6379'

	FIXERIO_API_KEY: str = ''
	OPENEXCHANGE_APP_ID: str = ''

	# Application
	APP_NAME: str = 'Currency Rate Graph API'
	DEBUG: bool = True
	HOST: str = '0.0.0.0'
	PORT: int = 8000

	# Rate graph
	GRAPH_CACHE_TTL_SECONDS: int = 300
	ANCHOR_CURRENCIES: list[str] = ['USD', 'EUR', 'GBP', 'CNY']
	PROVIDER_RATE_CONFIDENCE: float = 0.95
	MAX_HOPS: int = 5
	MIN_CONFIDENCE: float = 0.1
	ALL_PATHS_MAX_HOPS: int = 4
	ALL_PATHS_MAX_RESULTS: int = 10
	CONVERT_FALLBACK_TO_IDENTITY: bool = False

	# Logging
	LOG_LEVEL: str = 'INFO'
	LOG_DIRECTORY: str = 'logs'
	LOG_TO_FILE: bool = False

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')


@lru_cache
def get_settings() -> Settings:
	return Settings()
