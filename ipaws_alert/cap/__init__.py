"""
CAP (Common Alerting Protocol) model, builder, validator and XML codec

Implements OASIS CAP v1.2 with the IPAWS-OPEN profile.
"""

from .models import (
    CAPAlert, CAPInfo, CAPArea, CAPResource, Reference,
    CAPStatus, CAPMsgType, CAPScope, CAPCategory, CAPResponseType,
    CAPUrgency, CAPSeverity, CAPCertainty,
    IPAWS_CODE, SAME_GEOCODE,
)
from .builder import AlertBuilder, InfoBuilder, AreaBuilder, alert_from_dict
from .validator import (
    validate, ValidationResult, ValidationFinding, FindingSeverity, AlertValidationError
)
from .serializer import (
    encode, try_encode, EncodeResult, decode, decode_file,
    CAPFormatError, CAPEncodeError, format_cap_datetime, parse_cap_datetime,
)

__all__ = [
    'CAPAlert', 'CAPInfo', 'CAPArea', 'CAPResource', 'Reference',
    'CAPStatus', 'CAPMsgType', 'CAPScope', 'CAPCategory', 'CAPResponseType',
    'CAPUrgency', 'CAPSeverity', 'CAPCertainty',
    'IPAWS_CODE', 'SAME_GEOCODE',
    'AlertBuilder', 'InfoBuilder', 'AreaBuilder', 'alert_from_dict',
    'validate', 'ValidationResult', 'ValidationFinding', 'FindingSeverity', 'AlertValidationError',
    'encode', 'try_encode', 'EncodeResult', 'decode', 'decode_file',
    'CAPFormatError', 'CAPEncodeError', 'format_cap_datetime', 'parse_cap_datetime',
]
