"""
IPAWS-OPEN connection settings

Authentication uses mutual TLS with the FEMA-issued client certificate,
either a PKCS#12 file or a certificate looked up by thumbprint in a PEM
certificate store directory.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


# integration / JITC test endpoint; production is deployment configuration
TEST_ENDPOINT = 'https://tdl.integration.aws.fema.net/cap/SubmitCAPMessage'

COG_ID_HEADER = 'X-IPAWS-CogId'


@dataclass
class GatewayConfig:
    """
    Connection settings for the IPAWS-OPEN endpoint.

    cert_thumbprint + cert_store_path take precedence over
    certificate_path + certificate_password when both are set.
    """
    endpoint: str = TEST_ENDPOINT
    certificate_path: Optional[str] = None
    certificate_password: Optional[str] = None
    cert_thumbprint: Optional[str] = None
    cert_store_path: Optional[str] = None
    timeout: float = 30.0  # seconds
    max_retries: int = 3
    retry_delay: float = 5.0  # seconds, multiplied by the attempt number
    cog_id: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        """True when there is enough to attempt an authenticated connection."""
        return bool(self.endpoint) and bool(self.certificate_path or self.cert_thumbprint)

    @property
    def is_test_endpoint(self) -> bool:
        return self.endpoint == TEST_ENDPOINT

    def to_dict(self) -> Dict[str, Any]:
        """Settings for display; the certificate password is never included."""
        return {
            'endpoint': self.endpoint,
            'is_test_endpoint': self.is_test_endpoint,
            'certificate_path': self.certificate_path,
            'cert_thumbprint': self.cert_thumbprint,
            'cert_store_path': self.cert_store_path,
            'timeout': self.timeout,
            'max_retries': self.max_retries,
            'retry_delay': self.retry_delay,
            'cog_id': self.cog_id,
            'configured': self.is_configured
        }
