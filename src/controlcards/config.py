"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with CONTROLCARDS_ prefix.

Learn: pydantic-settings auto-loads from environment, validates types,
provides defaults. The database path is only a default here; the shell
(or the CLI --db flag) may connect to any file at runtime.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings

DEFAULT_JWT_SECRET = "controlcards-local-installation-secret-change-me"


class Settings(BaseSettings):
    """All app configuration. Set via CONTROLCARDS_* env vars."""

    # Database
    database_path: str = "controlcards.db"
    busy_timeout_seconds: float = 5.0

    # Auth
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    token_expire_hours: int = 24
    bcrypt_rounds: int = 12
    min_password_length: int = 6

    # Runtime
    environment: str = "development"
    debug: bool = False  # echo SQL
    log_level: str = "WARNING"

    model_config = {"env_prefix": "CONTROLCARDS_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure the signing secret is changed outside development."""
        if (
            self.environment != "development"
            and self.jwt_secret == DEFAULT_JWT_SECRET
        ):
            raise ValueError(
                "CONTROLCARDS_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Singleton, import this everywhere
settings = Settings()
