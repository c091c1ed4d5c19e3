from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BeforeValidator, HttpUrl, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

STRICT_SQL_MODE = (
    "STRICT_TRANS_TABLES,NO_ZERO_IN_DATE,NO_ZERO_DATE,"
    "ERROR_FOR_DIVISION_BY_ZERO,NO_ENGINE_SUBSTITUTION"
)


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "DB Master"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: HttpUrl | None = None

    FRONTEND_HOST: str = "http://localhost:5173"
    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    # External MySQL/MariaDB pools (one pool per host:port:database:user)
    EXTERNAL_DB_POOL_SIZE: int = 5
    EXTERNAL_DB_POOL_MAX_SIZE: int = 20
    EXTERNAL_DB_CONNECT_TIMEOUT_MS: int = 30000
    EXTERNAL_DB_ACQUIRE_TIMEOUT_MS: int = 30000
    EXTERNAL_DB_QUEUE_LIMIT: int = 0  # 0 = unbounded
    EXTERNAL_DB_STATEMENT_TIMEOUT_MS: int = 60000
    EXTERNAL_DB_POOL_RECYCLE_SEC: int = 3600
    # Idle connections older than this are pinged on checkout
    EXTERNAL_DB_KEEPALIVE_IDLE_SEC: float = 10.0
    EXTERNAL_DB_CHARSET: str = "utf8mb4"
    EXTERNAL_DB_SQL_MODE: str = STRICT_SQL_MODE

    # Data browser limits
    TABLE_DATA_MAX_PAGE_SIZE: int = 1000
    SCHEMA_MAX_PAGE_SIZE: int = 200


settings = Settings()  # type: ignore
