"""
Настройки приложения.

Читаются из переменных окружения и .env файла.
"""
from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )

    BOT_TOKEN: str = ''

    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = 'localhost'
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = 'subscriptions_bot'
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: str = 'postgres'
    DATABASE_ECHO: bool = False

    # Повторы UnitOfWorkFactory.new при serialization failure / deadlock
    UOW_MAX_RETRIES: int = Field(default=3, ge=0)
    UOW_RETRY_BASE_DELAY: float = Field(default=0.05, ge=0)

    LOG_LEVEL: str = 'INFO'
    LOG_FORMAT: str = 'console'

    @field_validator('LOG_FORMAT')
    @classmethod
    def _validate_log_format(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ('console', 'json'):
            raise ValueError('LOG_FORMAT must be "console" or "json"')
        return value

    @field_validator('LOG_LEVEL')
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper()

    def get_database_url(self) -> str:
        """URL для create_async_engine (драйвер asyncpg)."""
        if self.DATABASE_URL:
            url = self.DATABASE_URL
            if url.startswith('postgresql://'):
                url = 'postgresql+asyncpg://' + url.removeprefix('postgresql://')
            elif url.startswith('postgres://'):
                url = 'postgresql+asyncpg://' + url.removeprefix('postgres://')
            return url

        return (
            f'postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}'
            f'@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'
        )


settings = Settings()
