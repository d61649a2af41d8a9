"""
Credential store configuration.
Loads configuration from environment variables via python-dotenv.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env from project root (parent of infra/)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)


class Settings(BaseModel):
    """Runtime settings for the credential stores and CLI."""

    duckdb_path: str = Field("data/db/credentials.duckdb", description="Local store database file or :memory:")
    account: str = Field("default", min_length=1)
    google_access_token: str | None = Field(None)
    drive_file_name: str = Field("identity-vcs.json", min_length=1)
    drive_timeout: int = Field(30, gt=0)
    log_path: str = Field("logs/vcstore.log")

    model_config = {"str_strip_whitespace": True}


def get_settings() -> Settings:
    """Read settings from the environment (after .env has been loaded)."""
    return Settings(
        duckdb_path=os.getenv("VCSTORE_DUCKDB_PATH", "data/db/credentials.duckdb"),
        account=os.getenv("VCSTORE_ACCOUNT", "default"),
        google_access_token=os.getenv("GOOGLE_ACCESS_TOKEN") or None,
        drive_file_name=os.getenv("GOOGLE_DRIVE_VCS_FILE_NAME", "identity-vcs.json"),
        drive_timeout=int(os.getenv("GOOGLE_DRIVE_TIMEOUT", "30")),
        log_path=os.getenv("VCSTORE_LOG_PATH", "logs/vcstore.log"),
    )
