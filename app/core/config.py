from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    DATABASE_URL: str

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Auth
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # USDA Soil Data Access
    SDA_REST_URL: str = "https://SDMDataAccess.sc.egov.usda.gov/Tabular/post.rest"
    SDA_WMS_URL: str = "https://SDMDataAccess.sc.egov.usda.gov/Spatial/SDM.wms"
    SDA_TIMEOUT_SECONDS: float = 30.0

    # Soil cache
    SOIL_CACHE_BACKEND: Literal["database", "redis"] = "database"
    SOIL_CACHE_TTL_SECONDS: int = 604800  # 7 days
    DEFAULT_SOIL_PROVIDER: str = "usda-ssurgo"

    # App
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:5174"

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]


settings = Settings()
