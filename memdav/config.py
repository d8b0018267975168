# memdav/config.py
"""
Configuration management using Pydantic Settings.

Values come from MEMDAV_* environment variables (or a .env file) and are
overridden by command line flags. The resulting Settings object is frozen
and passed explicitly to everything that needs it.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MEMDAV_", env_file=".env", extra="ignore", frozen=True)
    # Listeners; an empty address disables the transport
    LISTEN_HTTP: str = ""
    LISTEN_HTTPS: str = ""
    LISTEN_UNIX: str = ""
    CERT_FILE: Optional[str] = None
    KEY_FILE: Optional[str] = None
    # Storage: memory unless DIR is set
    DIR: Optional[str] = None
    NO_SAVE: bool = False
    # Access policy
    NO_DELETE: bool = False
    READ_ONLY: bool = False
    SERVE_FILE: Optional[str] = None
    USERNAME: str = ""  # username and password both empty disables authentication
    PASSWORD: str = ""
    LOG_LEVEL: str = "INFO"
