import logging
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_DEFAULT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8000"
    SECRET_KEY: str = _DEFAULT_SECRET
    DATABASE_URL: str = "sqlite:///./data/kittrack.db"
    FIRST_ADMIN_USER: str = "admin"
    FIRST_ADMIN_PASS: str = "admin123"
    LOG_LEVEL: str = "INFO"
    DEFAULT_PROJECT: str = "Unspecified Project"

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()

if settings.SECRET_KEY == _DEFAULT_SECRET:
    if settings.APP_ENV == "production":
        raise RuntimeError("SECRET_KEY must be set in production. Check your .env file.")
    else:
        logger.warning("SECRET_KEY is using the default value; set it in .env before deploying")

if settings.FIRST_ADMIN_PASS == "admin123":
    if settings.APP_ENV == "production":
        logger.warning("FIRST_ADMIN_PASS is still 'admin123'; change it in .env")
    else:
        logger.warning("FIRST_ADMIN_PASS is using the default value; consider changing it in .env")
