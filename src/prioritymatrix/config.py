"""Configuration management using pydantic-settings."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PRIORITYMATRIX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Vault settings
    vault_path: Path | None = None

    # Matrix configuration document, relative to the vault root
    config_file: Path = Path("PriorityMatrix/priority_matrix_data.json")

    # File lock timeout for vault mutations (seconds)
    lock_timeout: float = 300.0

    @property
    def config_path(self) -> Path | None:
        if self.vault_path is None:
            return None
        return self.vault_path / self.config_file