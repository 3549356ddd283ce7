"""
Application settings

Loaded from IPAWS_* environment variables or a .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .client.config import GatewayConfig, TEST_ENDPOINT


class Settings(BaseSettings):
    """
    Environment-driven configuration for the gateway client and web API.

    Blank certificate and COG values are treated as unset.
    """

    model_config = SettingsConfigDict(
        env_prefix='IPAWS_',
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )

    endpoint: str = TEST_ENDPOINT
    certificate_path: Optional[str] = None
    certificate_password: Optional[str] = None
    cert_thumbprint: Optional[str] = None
    cert_store_path: Optional[str] = None
    cog_id: Optional[str] = None
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 5.0
    default_sender: str = ''
    log_level: str = 'INFO'
    cors_origins: str = '*'

    @property
    def cors_origins_list(self) -> list:
        """Comma-separated CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(',') if o.strip()]

    def gateway_config(self) -> GatewayConfig:
        """Build the submission client configuration."""
        return GatewayConfig(
            endpoint=self.endpoint,
            certificate_path=self.certificate_path or None,
            certificate_password=self.certificate_password or None,
            cert_thumbprint=self.cert_thumbprint or None,
            cert_store_path=self.cert_store_path or None,
            timeout=self.timeout,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            cog_id=self.cog_id or None,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
