"""
IPAWS alert toolkit

Build, validate, encode and submit CAP v1.2 alerts to the FEMA IPAWS-OPEN
gateway for WEA, EAS and NWEM dissemination.
"""

__version__ = '1.0.0'

from .cap import (
    CAPAlert, CAPInfo, CAPArea, CAPResource, Reference,
    CAPStatus, CAPMsgType, CAPScope, CAPCategory, CAPResponseType,
    CAPUrgency, CAPSeverity, CAPCertainty,
    AlertBuilder, InfoBuilder, AreaBuilder, alert_from_dict,
    validate, ValidationResult, ValidationFinding, FindingSeverity, AlertValidationError,
    encode, try_encode, decode, decode_file, CAPFormatError, CAPEncodeError,
)
from .channels import WeaChannel, EasChannel, NwemChannel
from .client import (
    GatewayConfig, GatewayClient, GatewayResponse, SubmissionStatus,
    ClientIdentity, CredentialError, resolve_identity,
)

__all__ = [
    'CAPAlert', 'CAPInfo', 'CAPArea', 'CAPResource', 'Reference',
    'CAPStatus', 'CAPMsgType', 'CAPScope', 'CAPCategory', 'CAPResponseType',
    'CAPUrgency', 'CAPSeverity', 'CAPCertainty',
    'AlertBuilder', 'InfoBuilder', 'AreaBuilder', 'alert_from_dict',
    'validate', 'ValidationResult', 'ValidationFinding', 'FindingSeverity', 'AlertValidationError',
    'encode', 'try_encode', 'decode', 'decode_file', 'CAPFormatError', 'CAPEncodeError',
    'WeaChannel', 'EasChannel', 'NwemChannel',
    'GatewayConfig', 'GatewayClient', 'GatewayResponse', 'SubmissionStatus',
    'ClientIdentity', 'CredentialError', 'resolve_identity',
]
