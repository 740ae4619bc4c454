from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DEBUG: bool
    DATABASE_URL: str
    REDIS_URL: str = ""
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    ALLOWED_HOSTS: str = "*"
    LOG_LEVEL: str = "INFO"

    # Cache
    NOTE_CACHE_TTL_SECONDS: int = 60
    EXPLORE_CACHE_TTL_SECONDS: int = 30
    CACHE_TIMEOUT_SECONDS: float = 0.5

    FOLDER_MAX_DEPTH: int = 64
    SEARCH_MIN_QUERY_LENGTH: int = 2

    class Config:
        env_file = [".env"]
        case_sensitive = True

    @property
    def allowed_hosts(self) -> list:
        return [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()]


settings = Settings()
