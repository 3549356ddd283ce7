"""
Shared fixtures for the ipaws_alert tests
"""

import sys
import os
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from ipaws_alert.cap import (
    AlertBuilder, CAPCategory, CAPStatus, CAPUrgency, CAPSeverity, CAPCertainty
)


# fixed reference time for validation rules
NOW = datetime(2025, 6, 1, 18, 0, 0, tzinfo=timezone.utc)


def build_alert(status=CAPStatus.ACTUAL, event='Tornado Warning'):
    """A tornado warning that passes validation at NOW with no findings."""
    def configure(info):
        (info
            .with_event(event)
            .add_category(CAPCategory.MET)
            .with_urgency(CAPUrgency.IMMEDIATE)
            .with_severity(CAPSeverity.EXTREME)
            .with_certainty(CAPCertainty.OBSERVED)
            .with_headline('Tornado Warning for Example County until 7:00 PM')
            .with_description('A confirmed tornado was located near Springfield.')
            .with_instruction('Take shelter now in a basement or interior room.')
            .with_effective(NOW)
            .with_expiry(NOW + timedelta(hours=1))
            .add_event_code('SAME', 'TOR')
            .add_wea_routing(short_text='Tornado Warning in this area until 7 PM. Take shelter now.')
            .add_eas_routing()
            .add_area(lambda area: area
                .with_description('Example County, PA')
                .add_location_code('042001')
                .add_location_code('042003')))

    return (
        AlertBuilder()
        .with_identifier('county.example.gov-20250601180000-abcd1234')
        .with_sender('ops@county.example.gov')
        .with_sent(NOW)
        .with_status(status)
        .add_info(configure)
        .build()
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def alert():
    return build_alert()


def make_certificate(common_name='ipaws-client.county.example.gov'):
    """Self-signed EC certificate and its key, valid around the current time."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    issued = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(issued - timedelta(days=1))
        .not_valid_after(issued + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return key, cert


def write_pkcs12(path, key, cert, password='changeit'):
    data = pkcs12.serialize_key_and_certificates(
        b'ipaws', key, cert, None,
        serialization.BestAvailableEncryption(password.encode('utf-8'))
    )
    path.write_bytes(data)
    return str(path)


def cert_pem(cert):
    return cert.public_bytes(serialization.Encoding.PEM)


def key_pem(key):
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    )


@pytest.fixture
def client_cert():
    return make_certificate()
