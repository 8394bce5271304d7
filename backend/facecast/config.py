from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+psycopg://user:password@db/dbname"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    LOG_LEVEL: str = "INFO"

    AWS_ENDPOINT_URL: Optional[str] = None
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION_NAME: str = "auto"
    S3_BUCKET_NAME: str = "facecast"
    S3_PUBLIC_BASE_URL: str = ""
    UPLOAD_URL_EXPIRE_SECONDS: int = 60 * 15
    UPLOAD_MAX_BYTES: int = 50 * 1024 * 1024

    FAL_API_KEY: str = ""
    FAL_QUEUE_BASE_URL: str = "https://queue.fal.run"
    FAL_VIDEO_MODEL: str = "fal-ai/kling-video/v2.6/standard/motion-control"
    FAL_POLL_INTERVAL_SECONDS: float = 5.0
    # video generation is slow; 13+ minutes
    GENERATION_TIMEOUT_SECONDS: float = 800.0
    ASSET_DOWNLOAD_TIMEOUT_SECONDS: float = 120.0

    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "Face Swap <noreply@facecast.app>"

    JWT_SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # externally reachable base URL, used for provider callbacks
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    ADMIN_API_KEY: str = ""
    ANONYMOUS_ID_PREFIX: str = "anon_"
    GENERATIONS_LIST_LIMIT: int = 50

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
