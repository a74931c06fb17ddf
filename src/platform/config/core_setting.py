from pathlib import Path
from typing import Annotated, List, Optional

import orjson
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Ticket Reconciliation'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production
    TIMEZONE: str = 'America/New_York'

    # Security (operator tokens for the admin surface)
    SECRET_KEY: SecretStr = SecretStr('test_secret_key_change_in_production')
    ALGORITHM: str = 'HS256'
    OPERATOR_TOKEN_EXPIRE_DAYS: int = 7

    # CORS
    # Comma-separated in the environment; NoDecode keeps pydantic-settings from JSON-parsing it
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and v.startswith('['):
            return orjson.loads(v)
        if isinstance(v, str):
            return [i.strip() for i in v.split(',') if i.strip()]
        elif isinstance(v, list):
            return v
        return []

    # PostgreSQL
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: SecretStr = SecretStr('postgres')
    POSTGRES_DB: str = 'ticket_reconciliation'
    POSTGRES_REPLICA_SERVER: Optional[str] = None
    POSTGRES_REPLICA_PORT: Optional[int] = None
    DATABASE_URL: Optional[str] = None  # full override, e.g. sqlite+aiosqlite:///./local.db

    # Connection pool
    DB_POOL_SIZE_WRITE: int = 10
    DB_POOL_SIZE_READ: int = 20
    DB_POOL_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_PRE_PING: bool = True

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f'postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}'
            f'@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'
        )

    @property
    def DATABASE_READ_URL_ASYNC(self) -> str:
        if self.DATABASE_URL or not self.POSTGRES_REPLICA_SERVER:
            return self.DATABASE_URL_ASYNC
        port = self.POSTGRES_REPLICA_PORT or self.POSTGRES_PORT
        return (
            f'postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}'
            f'@{self.POSTGRES_REPLICA_SERVER}:{port}/{self.POSTGRES_DB}'
        )

    # PayPal
    PAYPAL_CLIENT_ID: str = ''
    PAYPAL_CLIENT_SECRET: SecretStr = SecretStr('')
    PAYPAL_WEBHOOK_ID: str = ''
    PAYPAL_SANDBOX: bool = True
    PAYPAL_TIMEOUT_SECONDS: float = 10.0
    PAYPAL_TOKEN_REFRESH_MARGIN_SECONDS: int = 30

    @property
    def PAYPAL_BASE_URL(self) -> str:
        if self.PAYPAL_SANDBOX:
            return 'https://api.sandbox.paypal.com'
        return 'https://api.paypal.com'

    # Stripe
    STRIPE_API_KEY: SecretStr = SecretStr('')
    STRIPE_WEBHOOK_SECRET: SecretStr = SecretStr('')
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300
    STRIPE_TIMEOUT_SECONDS: int = 10
    STRIPE_SPLIT_PER_TICKET_CENTS: int = 500  # secondary account share per ticket

    # Capacity ledger
    LEDGER_DEFAULT_AVAILABLE: int = 0  # starting value for lazily created slots
    LEDGER_ENFORCE_FLOOR: bool = False  # use conditional decrements for transfers and manual sales


settings = Settings()  # type: ignore
