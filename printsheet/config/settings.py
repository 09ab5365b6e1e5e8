# config/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # API
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Print Sheet Service"

    # CORS
    ALLOWED_HOSTS: List[str] = ["*"]

    # Auth
    BASIC_AUTH_USERNAME: str = "admin"
    BASIC_AUTH_PASSWORD: str = "secret"

    # Back designs
    ASSETS_DIR: str = "public"
    DEFAULT_BACK_DESIGN: str = "amiibo-logo"
    BACK_DESIGN_PRINT_SIZE: int = 400
    BACK_DESIGN_PREVIEW_SIZE: int = 100

    # Image adjustment policy
    DEFAULT_ZOOM: float = 1.2
    COVER_FIT_MAX_ZOOM: float = 2.0
    MAX_ZOOM: float = 2.0

    # Rendering
    IMAGE_FETCH_TIMEOUT: int = 30
    RENDER_TIMEOUT_SECONDS: int = 120
    MAX_WORKERS: int = 4

    # Env
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

settings = Settings()
