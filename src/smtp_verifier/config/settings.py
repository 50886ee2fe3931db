"""
Pydantic Settings configuration for SMTP Verifier.

Loads the delivery endpoints, the secrets used by the direct-network mode
and the trust-store location from environment variables (or a .env file).
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings

# Hostname chars only; also accepts single-label names such as "Windows-Server"
HOSTNAME_PATTERN = r"^[a-zA-Z0-9.-]+$"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Secrets for the direct-network mode
    email_username: str = Field("")
    email_password: SecretStr = Field(SecretStr(""))

    # Public provider, STARTTLS on submission port
    public_smtp_host: str = Field("smtp.gmail.com", pattern=HOSTNAME_PATTERN)
    public_smtp_port: int = Field(587, ge=1, le=65535)

    # Private server requiring a client certificate
    private_smtp_host: str = Field("Windows-Server", pattern=HOSTNAME_PATTERN)
    private_smtp_port: int = Field(25, ge=1, le=65535)
    private_ca_file: str | None = Field(None)

    # Local pickup directory; must already exist
    pickup_directory: str = Field("/var/spool/smtp-verifier/pickup", pattern=r"\S")

    # Client certificate lookup
    client_cert_thumbprint: str = Field(
        "4197D86EF230F5E475C8458C60523ADD344BB78D", pattern=r"^[0-9A-Fa-f]{40}$"
    )
    client_key_path: str | None = Field(None)
    trust_store_name: str = Field("root")
    # None means the OS default CA bundle
    trust_store_path: str | None = Field(None)

    smtp_timeout: int = Field(30, ge=1, le=300)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure only one Settings instance is created,
    avoiding repeated environment variable parsing.
    """
    return Settings()
