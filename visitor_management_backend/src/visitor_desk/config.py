"""
Application configuration, read from environment variables and `.env`.
"""

from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine.url import URL

load_dotenv()


# PUBLIC_INTERFACE
class Settings(BaseSettings):
    """
    Deployment settings for the visitor desk backend.

    When neither DATABASE_URL nor the POSTGRES_* variables are set the app
    runs in demo mode against an in-memory record store.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ---------------------------
    # Database
    # ---------------------------
    DATABASE_URL: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: Optional[str] = None

    # ---------------------------
    # API / Project
    # ---------------------------
    PROJECT_NAME: str = "Visitor Desk Backend"
    FRONTEND_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # ---------------------------
    # Kiosk display / scheduling
    # ---------------------------
    DISPLAY_REFRESH_SECONDS: int = 30
    AUTO_CHECKOUT_POLL_MINUTES: int = 15
    ENABLE_SCHEDULER: bool = True
    DEFAULT_TIMEZONE: str = "Europe/Berlin"

    @property
    def database_url(self) -> Optional[str]:
        """
        Effective SQLAlchemy URL.
        Priority:
        1) Explicit DATABASE_URL
        2) PostgreSQL URL built from POSTGRES_* (needs at least user and db)
        3) None, meaning demo mode
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.POSTGRES_USER and self.POSTGRES_DB:
            return URL.create(
                drivername="postgresql+psycopg2",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_HOST,
                port=self.POSTGRES_PORT,
                database=self.POSTGRES_DB,
            ).render_as_string(hide_password=False)
        return None

    @property
    def is_demo_mode(self) -> bool:
        return self.database_url is None


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
