from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Backend Process
    BACKEND_API_URL: str = "http://127.0.0.1:7070"
    BACKEND_API_TIMEOUT: int = 10

    # Application Info
    APP_NAME: str = "Outline VPN Client"
    APP_VERSION: str = "1.0.0"

    # Local API for the rendering layer
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8000

    # Diagnostics Database
    DATABASE_URL: str = "sqlite:///./vpn_client.db"

    # Refresh Configuration
    REFRESH_INTERVAL_MS: int = 1000
    LICENSE_REFRESH_INTERVAL_MS: int = 60000

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
