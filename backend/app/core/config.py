from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    FRONTEND_URL: str = "http://localhost:5173"
    FRONTEND_URLS: str | None = None
    MEMORY_RETENTION_DAYS: int = 30
    MEMORY_ON_THIS_DAY_MAX_ASSETS: int = 50
    MEMORIES_JOB_HOUR: int = 0
    MEMORY_CLEANUP_HOUR: int = 0
    MEMORY_CLEANUP_MINUTE: int = 30

    class Config:
        env_file = ".env"

settings = Settings()
