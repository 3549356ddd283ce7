"""
Client identity resolution for mutual TLS

Two sources, store reference first:
- thumbprint lookup in a certificate store directory of PEM files (each
  holding a certificate and its private key, or with the key in a sibling
  `.key` file)
- PKCS#12 (.p12 / .pfx) bundle with its password
"""

import logging
import os
import ssl
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from .config import GatewayConfig

logger = logging.getLogger(__name__)

STORE_SUFFIXES = ('.pem', '.crt', '.cer')


class CredentialFailure(Enum):
    FILE_MISSING = 'FileMissing'
    WRONG_PASSWORD = 'WrongPassword'
    NOT_FOUND = 'NotFound'
    INVALID = 'Invalid'


class CredentialError(RuntimeError):
    """Client identity could not be resolved; `reason` says why."""

    def __init__(self, reason: CredentialFailure, message: str):
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class ClientIdentity:
    """Certificate and private key presented during the TLS handshake."""
    certificate_pem: bytes
    private_key_pem: bytes
    thumbprint: str  # SHA-1, upper-case hex
    subject: str
    source: str

    def to_dict(self):
        return {'thumbprint': self.thumbprint, 'subject': self.subject, 'source': self.source}


def normalize_thumbprint(thumbprint: str) -> str:
    return ''.join(c for c in thumbprint if c not in ' :').upper()


def _thumbprint(cert: x509.Certificate) -> str:
    return cert.fingerprint(hashes.SHA1()).hex().upper()


def _identity(cert: x509.Certificate, key, source: str) -> ClientIdentity:
    return ClientIdentity(
        certificate_pem=cert.public_bytes(serialization.Encoding.PEM),
        private_key_pem=key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption()
        ),
        thumbprint=_thumbprint(cert),
        subject=cert.subject.rfc4514_string(),
        source=source
    )


def load_pkcs12(path: str, password: Optional[str]) -> ClientIdentity:
    """
    Load an identity from a PKCS#12 bundle.

    Raises:
        CredentialError: FILE_MISSING, WRONG_PASSWORD or INVALID
    """
    if not os.path.isfile(path):
        raise CredentialError(CredentialFailure.FILE_MISSING, f"Certificate file not found: {path}")

    data = Path(path).read_bytes()
    try:
        key, cert, _ = pkcs12.load_key_and_certificates(
            data, password.encode('utf-8') if password else None
        )
    except ValueError as e:
        # a DER SEQUENCE that fails to open is almost always a bad password
        if data[:1] == b'\x30':
            raise CredentialError(
                CredentialFailure.WRONG_PASSWORD, f"Could not decrypt {path}: wrong password?"
            ) from e
        raise CredentialError(CredentialFailure.INVALID, f"Not a PKCS#12 file: {path}") from e

    if cert is None or key is None:
        raise CredentialError(
            CredentialFailure.INVALID, f"{path} does not contain both a certificate and a private key"
        )
    return _identity(cert, key, source=f'file:{path}')


def _load_store_entry(path: Path) -> Tuple[list, Optional[bytes]]:
    data = path.read_bytes()
    try:
        certs = x509.load_pem_x509_certificates(data)
    except ValueError:
        return [], None
    if b'PRIVATE KEY' in data:
        return certs, data
    key_path = path.with_suffix('.key')
    if key_path.is_file():
        return certs, key_path.read_bytes()
    return certs, None


def find_in_store(store_path: str, thumbprint: str) -> ClientIdentity:
    """
    Find a certificate by SHA-1 thumbprint in a PEM store directory.

    Raises:
        CredentialError: NOT_FOUND if no matching certificate, INVALID if it has no usable key
    """
    wanted = normalize_thumbprint(thumbprint)
    store = Path(store_path)
    if not store.is_dir():
        raise CredentialError(CredentialFailure.NOT_FOUND, f"Certificate store not found: {store_path}")

    for path in sorted(store.iterdir()):
        if path.suffix.lower() not in STORE_SUFFIXES or not path.is_file():
            continue
        certs, key_data = _load_store_entry(path)
        for cert in certs:
            if _thumbprint(cert) != wanted:
                continue
            if key_data is None:
                raise CredentialError(
                    CredentialFailure.INVALID, f"Certificate {wanted} in {path} has no private key"
                )
            try:
                key = serialization.load_pem_private_key(key_data, password=None)
            except (ValueError, TypeError) as e:
                raise CredentialError(
                    CredentialFailure.INVALID, f"Private key for {wanted} in {path} is unusable: {e}"
                ) from e
            return _identity(cert, key, source=f'store:{path}')

    raise CredentialError(
        CredentialFailure.NOT_FOUND, f"Certificate with thumbprint '{thumbprint}' not found in {store_path}"
    )


def resolve_identity(config: GatewayConfig) -> Optional[ClientIdentity]:
    """
    Resolve the client identity for a gateway config.

    Returns:
        ClientIdentity, or None when no credential is configured (submissions
        will then fail at the gateway's authentication stage)

    Raises:
        CredentialError: If the configured credential cannot be loaded
    """
    if config.cert_thumbprint:
        if not config.cert_store_path:
            raise CredentialError(
                CredentialFailure.NOT_FOUND,
                f"Thumbprint '{config.cert_thumbprint}' configured without a certificate store"
            )
        identity = find_in_store(config.cert_store_path, config.cert_thumbprint)
    elif config.certificate_path:
        identity = load_pkcs12(config.certificate_path, config.certificate_password)
    else:
        logger.warning("No client certificate configured; gateway will reject submissions")
        return None

    logger.info(f"Loaded client certificate {identity.thumbprint} ({identity.subject}) from {identity.source}")
    return identity


def build_ssl_context(identity: Optional[ClientIdentity] = None) -> ssl.SSLContext:
    """
    Client SSL context with server verification on and the identity loaded.
    """
    context = ssl.create_default_context()
    if identity is None:
        return context

    # load_cert_chain only reads from files
    with tempfile.TemporaryDirectory() as tmp:
        cert_file = os.path.join(tmp, 'client.crt')
        key_file = os.path.join(tmp, 'client.key')
        with open(cert_file, 'wb') as f:
            f.write(identity.certificate_pem)
        with open(key_file, 'wb') as f:
            f.write(identity.private_key_pem)
        context.load_cert_chain(cert_file, key_file)

    return context
