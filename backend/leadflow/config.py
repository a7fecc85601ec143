from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Any SQLAlchemy URL works; sqlite is the zero-setup default
    DATABASE_URL: str = "sqlite:///./leadflow.db"
    SECRET_KEY: str = "change-me-in-production"

    # JWT
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    APP_TITLE: str = "Leadflow CRM"
    APP_VERSION: str = "0.1.0"

    # When true, persistence errors expose their message to API callers
    DEBUG: bool = False
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    # "New" bucket of the daily pipeline looks back this many days
    PIPELINE_NEW_LEAD_DAYS: int = 3

    class Config:
        env_file = ".env"

settings = Settings()
