import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel


def _database_url_from_env() -> str:
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    # MYSQL_* variables describe the deployed MySQL store
    host = os.getenv("MYSQL_HOST")
    if host:
        user = os.getenv("MYSQL_USER", "root")
        password = os.getenv("MYSQL_PASSWORD", "")
        port = os.getenv("MYSQL_PORT", "3306")
        database = os.getenv("MYSQL_DATABASE", "library")
        return f"mysql+pymysql://{user}:{password}@{host}:{port}/{database}"
    return "sqlite:///./library.db"


# application settings
class Settings(BaseModel):
    database_url: str = "sqlite:///./library.db"
    jwt_secret: str = "super-secret-key"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    cache_ttl: int = 600
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: List[str] = ["http://localhost:3000"]
    log_level: str = "INFO"


def get_settings() -> Settings:
    load_dotenv()
    origins = os.getenv("CORS_ORIGINS", "http://localhost:3000")
    return Settings(
        database_url=_database_url_from_env(),
        jwt_secret=os.getenv("JWT_SECRET", "super-secret-key"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60")),
        cache_ttl=int(os.getenv("CACHE_TTL", "600")),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5000")),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
