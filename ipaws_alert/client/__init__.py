"""
IPAWS-OPEN submission client over mutual TLS
"""

from .config import GatewayConfig, TEST_ENDPOINT, COG_ID_HEADER
from .credentials import (
    ClientIdentity, CredentialError, CredentialFailure,
    resolve_identity, build_ssl_context, load_pkcs12, find_in_store,
)
from .response import GatewayResponse, SubmissionStatus
from .gateway import GatewayClient

__all__ = [
    'GatewayConfig', 'TEST_ENDPOINT', 'COG_ID_HEADER',
    'ClientIdentity', 'CredentialError', 'CredentialFailure',
    'resolve_identity', 'build_ssl_context', 'load_pkcs12', 'find_in_store',
    'GatewayResponse', 'SubmissionStatus',
    'GatewayClient',
]
