import logging
from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# PUBLIC_INTERFACE
class Settings(BaseSettings):
    """Runtime configuration shared by the auth service and the session verifier."""

    # Load .env for DB/JWT settings
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    database_url: str = Field("sqlite:///./notes_manager.db", validation_alias="DATABASE_URL")
    jwt_secret_key: str = Field("notsosecret", validation_alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", validation_alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, validation_alias="JWT_ACCESS_TOKEN_EXPIRE_MINUTES")
    jwt_issuer: Optional[str] = Field(None, validation_alias="JWT_ISSUER")
    jwt_audience: Optional[str] = Field(None, validation_alias="JWT_AUDIENCE")
    password_min_length: int = Field(8, validation_alias="PASSWORD_MIN_LENGTH")
    # comma separated in the environment
    cors_origins: Annotated[List[str], NoDecode] = Field(["*"], validation_alias="CORS_ORIGINS")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value


# PUBLIC_INTERFACE
@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(level: str) -> None:
    """Install the default handler unless the host already configured the root logger."""
    if not logging.getLogger().handlers:
        logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("notes_manager").setLevel(level.upper())
