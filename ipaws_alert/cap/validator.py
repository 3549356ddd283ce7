"""
CAP alert validation

Checks an alert against the CAP v1.2 schema rules, the IPAWS-OPEN profile
and the per-channel constraints of WEA, EAS and NWEM. Validation is pure:
it never mutates the alert and never raises for a well-formed model.

Finding codes are stable and safe to match on:
- CAP0xx: CAP schema and profile rules
- IPAWS0xx: gateway requirements
- WEA0xx / EAS0xx / NWEM0xx: channel rules, checked only when the channel's
  handling parameter is 'Broadcast'
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .models import (
    CAPAlert, CAPInfo, CAPArea,
    CAPStatus, CAPMsgType, CAPScope, CAPUrgency, CAPSeverity, CAPCertainty,
    IPAWS_CODE, SAME_GEOCODE, WEA_HANDLING, EAS_HANDLING, NWEM_HANDLING,
    WEA_SHORT_TEXT, WEA_LONG_TEXT, as_utc,
)
from ..eas.event_codes import is_known_event


WEA_SHORT_TEXT_MAX = 90
WEA_LONG_TEXT_MAX = 360
EAS_MAX_LOCATIONS = 31

FUTURE_SENT_TOLERANCE = timedelta(minutes=5)
WEA_MAX_DURATION = timedelta(hours=24)

LOCATION_CODE_PATTERN = re.compile(r'[0-9]{6}')


class FindingSeverity(Enum):
    WARNING = 'Warning'
    ERROR = 'Error'


@dataclass(frozen=True)
class ValidationFinding:
    """A single validation finding; path locates the field, e.g. info[0].areas[1]."""
    severity: FindingSeverity
    code: str
    message: str
    path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'severity': self.severity.value,
            'code': self.code,
            'message': self.message,
            'path': self.path
        }

    def __str__(self) -> str:
        location = f" ({self.path})" if self.path else ''
        return f"[{self.code}] {self.message}{location}"


class AlertValidationError(ValueError):
    """Raised by `ValidationResult.raise_if_invalid` when errors exist."""

    def __init__(self, result: 'ValidationResult'):
        lines = '\n  - '.join(str(f) for f in result.errors)
        super().__init__(f"CAP alert validation failed:\n  - {lines}")
        self.result = result


@dataclass
class ValidationResult:
    """Findings produced by `validate`, in rule order."""
    findings: List[ValidationFinding] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(f.severity == FindingSeverity.ERROR for f in self.findings)

    @property
    def errors(self) -> List[ValidationFinding]:
        return [f for f in self.findings if f.severity == FindingSeverity.ERROR]

    @property
    def warnings(self) -> List[ValidationFinding]:
        return [f for f in self.findings if f.severity == FindingSeverity.WARNING]

    def codes(self) -> List[str]:
        return [f.code for f in self.findings]

    def error(self, code: str, message: str, path: Optional[str] = None) -> None:
        self.findings.append(ValidationFinding(FindingSeverity.ERROR, code, message, path))

    def warning(self, code: str, message: str, path: Optional[str] = None) -> None:
        self.findings.append(ValidationFinding(FindingSeverity.WARNING, code, message, path))

    def raise_if_invalid(self) -> None:
        """
        Raises:
            AlertValidationError: If any error-severity finding exists
        """
        if not self.is_valid:
            raise AlertValidationError(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.is_valid,
            'errors': [f.to_dict() for f in self.errors],
            'warnings': [f.to_dict() for f in self.warnings]
        }


def validate(alert: CAPAlert, now: Optional[datetime] = None) -> ValidationResult:
    """
    Validate an alert.

    Args:
        alert: Alert to check
        now: Reference time for the timing rules (defaults to current UTC time)

    Returns:
        ValidationResult with all findings
    """
    now = as_utc(now) if now else datetime.now(timezone.utc)
    result = ValidationResult()

    _validate_alert(alert, now, result)
    for i, info in enumerate(alert.info):
        _validate_info(info, f'info[{i}]', alert.status, now, result)

    return result


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _looks_like_email(sender: str) -> bool:
    return '@' in sender and '.' in sender


def _validate_alert(alert: CAPAlert, now: datetime, r: ValidationResult) -> None:
    if _blank(alert.identifier):
        r.error('CAP001', "Alert identifier is required", 'identifier')

    if _blank(alert.sender):
        r.error('CAP002', "Alert sender is required", 'sender')
    elif not _looks_like_email(alert.sender):
        r.warning('CAP003', f"Sender '{alert.sender}' does not look like an email address", 'sender')

    if alert.sent is None:
        r.error('CAP004', "Alert sent timestamp is required", 'sent')
    elif as_utc(alert.sent) > now + FUTURE_SENT_TOLERANCE:
        r.warning('CAP005', "Alert sent time is more than 5 minutes in the future", 'sent')

    if alert.msg_type in (CAPMsgType.UPDATE, CAPMsgType.CANCEL) and not alert.references:
        r.error('CAP006', f"msgType '{alert.msg_type.value}' requires at least one reference", 'references')

    if alert.scope == CAPScope.RESTRICTED and _blank(alert.restriction):
        r.error('CAP007', "Scope 'Restricted' requires a restriction", 'restriction')

    if alert.scope == CAPScope.PRIVATE and not alert.addresses:
        r.error('CAP008', "Scope 'Private' requires addresses", 'addresses')

    if IPAWS_CODE not in alert.codes:
        r.error('IPAWS001', f"IPAWS-OPEN requires the code '{IPAWS_CODE}'", 'codes')

    if not alert.info:
        r.error('CAP009', "Alert must contain at least one info block", 'info')


def _validate_info(
    info: CAPInfo,
    path: str,
    status: CAPStatus,
    now: datetime,
    r: ValidationResult
) -> None:
    if _blank(info.event):
        r.error('CAP010', "Event is required", f'{path}.event')

    if _blank(info.headline):
        r.warning('CAP011', "Headline is strongly recommended", f'{path}.headline')

    if status == CAPStatus.ACTUAL:
        if info.urgency == CAPUrgency.UNKNOWN:
            r.warning('CAP012', "Urgency 'Unknown' on an Actual alert", f'{path}.urgency')
        if info.severity == CAPSeverity.UNKNOWN:
            r.warning('CAP013', "Severity 'Unknown' on an Actual alert", f'{path}.severity')
        if info.certainty == CAPCertainty.UNKNOWN:
            r.warning('CAP014', "Certainty 'Unknown' on an Actual alert", f'{path}.certainty')

    if info.expires is not None:
        expires = as_utc(info.expires)
        if expires <= now:
            r.error('CAP015', "Expires is in the past", f'{path}.expires')
        if info.effective is not None and expires <= as_utc(info.effective):
            r.error('CAP016', "Expires must be after effective", f'{path}.expires')
        if expires > now + WEA_MAX_DURATION:
            r.warning(
                'CAP017',
                "Expires is more than 24 hours ahead; WEA caps alert duration at 24 hours",
                f'{path}.expires'
            )
    else:
        r.warning('CAP018', "Expires not set; the gateway will apply a default", f'{path}.expires')

    if not info.areas:
        r.error('CAP019', "Info block must have at least one area", f'{path}.areas')

    for j, area in enumerate(info.areas):
        _validate_area(area, f'{path}.areas[{j}]', r)

    if info.channel_enabled(WEA_HANDLING):
        _validate_wea(info, path, r)
    if info.channel_enabled(EAS_HANDLING):
        _validate_eas(info, path, r)
    if info.channel_enabled(NWEM_HANDLING):
        _validate_nwem(info, path, r)


def _validate_area(area: CAPArea, path: str, r: ValidationResult) -> None:
    if _blank(area.area_desc):
        r.warning('CAP020', "Area description is missing", f'{path}.area_desc')

    if not area.has_geography:
        r.error(
            'CAP021',
            "Area needs at least one of location codes, polygons, circles or geocodes",
            path
        )

    for code in area.location_codes:
        if not LOCATION_CODE_PATTERN.fullmatch(code):
            r.error('CAP022', f"Location code '{code}' must be exactly 6 digits", path)

    for i, polygon in enumerate(area.polygons):
        poly_path = f'{path}.polygons[{i}]'
        if len(polygon) < 4:
            r.error('CAP023', f"Polygon {i} needs at least 4 points (3 + closing point)", poly_path)
        elif not area.polygon_is_closed(i):
            r.warning('CAP024', f"Polygon {i} is not closed (first and last points differ)", poly_path)

        bad_lat = next((lat for lat, _ in polygon if not -90 <= lat <= 90), None)
        if bad_lat is not None:
            r.error('CAP025', f"Polygon {i} contains an invalid latitude: {bad_lat}", poly_path)
        bad_lon = next((lon for _, lon in polygon if not -180 <= lon <= 180), None)
        if bad_lon is not None:
            r.error('CAP026', f"Polygon {i} contains an invalid longitude: {bad_lon}", poly_path)

    if area.altitude is not None and area.ceiling is not None and area.ceiling <= area.altitude:
        r.error('CAP027', "Ceiling must be greater than altitude", path)


def _validate_wea(info: CAPInfo, path: str, r: ValidationResult) -> None:
    if not info.location_codes():
        r.warning('WEA001', "WEA targeting works best with location codes in at least one area", f'{path}.areas')

    short_text = info.get_parameter(WEA_SHORT_TEXT)
    if short_text is not None and len(short_text) > WEA_SHORT_TEXT_MAX:
        r.error(
            'WEA002',
            f"{WEA_SHORT_TEXT} is {len(short_text)} characters; maximum is {WEA_SHORT_TEXT_MAX}",
            f'{path}.parameters[{WEA_SHORT_TEXT}]'
        )

    long_text = info.get_parameter(WEA_LONG_TEXT)
    if long_text is not None and len(long_text) > WEA_LONG_TEXT_MAX:
        r.error(
            'WEA003',
            f"{WEA_LONG_TEXT} is {len(long_text)} characters; maximum is {WEA_LONG_TEXT_MAX}",
            f'{path}.parameters[{WEA_LONG_TEXT}]'
        )

    if short_text is None and long_text is None:
        r.warning(
            'WEA004',
            f"WEA is enabled but neither {WEA_SHORT_TEXT} nor {WEA_LONG_TEXT} is set; "
            "the gateway will derive the text from the headline",
            path
        )

    if info.headline and len(info.headline) > WEA_SHORT_TEXT_MAX:
        r.warning(
            'WEA005',
            f"Headline is {len(info.headline)} characters; legacy WEA devices show {WEA_SHORT_TEXT_MAX}",
            f'{path}.headline'
        )


def _validate_eas(info: CAPInfo, path: str, r: ValidationResult) -> None:
    codes = set(info.location_codes())
    if not codes:
        r.error('EAS001', "EAS requires location codes in at least one area", f'{path}.areas')
    elif len(codes) > EAS_MAX_LOCATIONS:
        r.warning(
            'EAS002',
            f"EAS headers carry at most {EAS_MAX_LOCATIONS} location codes; found {len(codes)}",
            f'{path}.areas'
        )

    event_code = info.get_event_code(SAME_GEOCODE)
    if event_code is not None and not is_known_event(event_code):
        r.warning('EAS003', f"SAME event code '{event_code}' is not a known EAS event", f'{path}.event_codes')


def _validate_nwem(info: CAPInfo, path: str, r: ValidationResult) -> None:
    if not info.has_parameter('VTEC'):
        r.warning('NWEM001', "NWEM is enabled but no VTEC parameter is present", path)

    if not any(area.geocode_values('UGC') for area in info.areas):
        r.warning('NWEM002', "NWEM is enabled but no UGC geocodes are present", path)
