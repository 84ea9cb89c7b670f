from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables from the .env file.
load_dotenv()


class Settings(BaseSettings):
    """
    Catalog admin settings loaded from environment variables.
    Pydantic's BaseSettings handles type validation automatically.
    """

    # Project Info
    PROJECT_NAME: str = "Pharmacy Catalog Admin"
    VERSION: str = "1.0.0"

    # Admin API Configuration
    ADMIN_API_URL: str = Field(
        "http://localhost:3000",
        env="ADMIN_API_URL",
        description="Base URL of the storefront REST API.",
    )
    ADMIN_API_TOKEN: Optional[str] = Field(
        None,
        env="ADMIN_API_TOKEN",
        description="Pre-issued admin bearer token. Sent as-is when set.",
    )
    ADMIN_API_TIMEOUT_SEC: float = Field(30.0, env="ADMIN_API_TIMEOUT_SEC")

    # What to do with the optimistic tree when a reorder is rejected:
    # "rollback" restores the last confirmed tree, "refetch" reloads it from the API.
    REORDER_ROLLBACK_POLICY: Literal["rollback", "refetch"] = Field(
        "rollback", env="REORDER_ROLLBACK_POLICY"
    )

    NOTIFICATION_HISTORY_SIZE: int = Field(50, env="NOTIFICATION_HISTORY_SIZE")

    LOG_LEVEL: str = Field("INFO", env="LOG_LEVEL")

    class Config:
        """
        Configuration for Pydantic's BaseSettings.
        """

        env_file = ".env"
        case_sensitive = True


# Instantiate the settings object to be used throughout the application.
settings = Settings()
