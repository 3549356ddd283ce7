"""
CAP v1.2 alert model

In-memory representation of an alert message and its nested blocks, per the
OASIS CAP v1.2 specification and the IPAWS-OPEN profile.
Reference: http://docs.oasis-open.org/emergency/cap/v1.2/CAP-v1.2.html

All model classes are frozen; build them with `ipaws_alert.cap.builder` or
the decoder in `ipaws_alert.cap.serializer`.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple


# handling code the gateway requires in every message
IPAWS_CODE = 'IPAWSv1.0'

# reserved geocode valueName carrying 6-digit location codes
SAME_GEOCODE = 'SAME'

# channel routing parameters (valueName -> 'Broadcast' enables the channel)
WEA_HANDLING = 'WEAHandling'
EAS_HANDLING = 'EASHandling'
NWEM_HANDLING = 'NWEMHandling'
BROADCAST = 'Broadcast'

# WEA text parameters
WEA_SHORT_TEXT = 'CMAMtext'
WEA_LONG_TEXT = 'CMAMlongtext'

ValuePair = Tuple[str, str]
Point = Tuple[float, float]
Circle = Tuple[float, float, float]


class CAPStatus(Enum):
    ACTUAL = 'Actual'
    EXERCISE = 'Exercise'
    SYSTEM = 'System'
    TEST = 'Test'
    DRAFT = 'Draft'


class CAPMsgType(Enum):
    ALERT = 'Alert'
    UPDATE = 'Update'
    CANCEL = 'Cancel'
    ACK = 'Ack'
    ERROR = 'Error'


class CAPScope(Enum):
    PUBLIC = 'Public'
    RESTRICTED = 'Restricted'
    PRIVATE = 'Private'


class CAPCategory(Enum):
    GEO = 'Geo'
    MET = 'Met'
    SAFETY = 'Safety'
    SECURITY = 'Security'
    RESCUE = 'Rescue'
    FIRE = 'Fire'
    HEALTH = 'Health'
    ENV = 'Env'
    TRANSPORT = 'Transport'
    INFRA = 'Infra'
    CBRNE = 'CBRNE'
    OTHER = 'Other'


class CAPUrgency(Enum):
    IMMEDIATE = 'Immediate'
    EXPECTED = 'Expected'
    FUTURE = 'Future'
    PAST = 'Past'
    UNKNOWN = 'Unknown'


class CAPSeverity(Enum):
    EXTREME = 'Extreme'
    SEVERE = 'Severe'
    MODERATE = 'Moderate'
    MINOR = 'Minor'
    UNKNOWN = 'Unknown'


class CAPCertainty(Enum):
    OBSERVED = 'Observed'
    LIKELY = 'Likely'
    POSSIBLE = 'Possible'
    UNLIKELY = 'Unlikely'
    UNKNOWN = 'Unknown'


class CAPResponseType(Enum):
    SHELTER = 'Shelter'
    EVACUATE = 'Evacuate'
    PREPARE = 'Prepare'
    EXECUTE = 'Execute'
    AVOID = 'Avoid'
    MONITOR = 'Monitor'
    ASSESS = 'Assess'
    ALL_CLEAR = 'AllClear'
    NONE = 'None'


def enum_from_text(enum_cls, text: str):
    """
    Look up an enum member by its CAP value, ignoring case.

    Raises:
        ValueError: If no member matches
    """
    wanted = text.strip().lower()
    for member in enum_cls:
        if member.value.lower() == wanted:
            return member
    raise ValueError(f"Unknown {enum_cls.__name__} value: '{text}'")


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_cap_datetime(value: datetime) -> str:
    """
    Format a timestamp as CAP requires: YYYY-MM-DDThh:mm:ss+hh:mm.

    Naive values are taken as UTC; 'Z' is never emitted.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat(timespec='seconds')


def parse_cap_datetime(text: str) -> datetime:
    """
    Parse a CAP datetime string (ISO 8601).

    formats: 2024-01-15T12:00:00-05:00 or 2024-01-15T17:00:00Z
    Values without an offset are taken as UTC.

    Raises:
        ValueError: If the text is not a valid timestamp
    """
    text = text.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _iso(value: Optional[datetime]) -> Optional[str]:
    return format_cap_datetime(value) if value else None


@dataclass(frozen=True)
class Reference:
    """Pointer to an earlier message: sender, identifier and sent time."""
    sender: str
    identifier: str
    sent: datetime

    def to_cap(self) -> str:
        """Render as the CAP `sender,identifier,sent` triplet."""
        return f"{self.sender},{self.identifier},{format_cap_datetime(self.sent)}"

    @classmethod
    def parse(cls, text: str) -> 'Reference':
        """
        Parse a `sender,identifier,sent` triplet.

        Raises:
            ValueError: If the text does not have three parts or the time is invalid
        """
        parts = text.strip().split(',')
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"Invalid reference (expected sender,identifier,sent): {text}")
        return cls(sender=parts[0], identifier=parts[1], sent=parse_cap_datetime(parts[2]))


@dataclass(frozen=True)
class CAPResource:
    """Supplemental file attached to an info block."""
    resource_desc: str = ''
    mime_type: str = ''
    size: int = -1  # -1 = unknown
    uri: Optional[str] = None
    deref_uri: Optional[str] = None  # inline base64 content
    digest: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'resource_desc': self.resource_desc,
            'mime_type': self.mime_type,
            'size': self.size,
            'uri': self.uri,
            'has_inline_content': self.deref_uri is not None,
            'digest': self.digest
        }


@dataclass(frozen=True)
class CAPArea:
    """
    Geographic area affected by an info block.

    At least one of location_codes, polygons, circles or geocodes must be set
    for the area to be usable (see `has_geography`).
    """
    area_desc: Optional[str] = None
    location_codes: Tuple[str, ...] = ()
    polygons: Tuple[Tuple[Point, ...], ...] = ()
    circles: Tuple[Circle, ...] = ()
    geocodes: Tuple[ValuePair, ...] = ()
    altitude: Optional[float] = None
    ceiling: Optional[float] = None

    @property
    def has_geography(self) -> bool:
        return bool(self.location_codes or self.polygons or self.circles or self.geocodes)

    def polygon_is_closed(self, index: int) -> bool:
        """True when the polygon's first vertex equals its last."""
        points = self.polygons[index]
        return bool(points) and points[0] == points[-1]

    def geocode_values(self, name: str) -> List[str]:
        """Values of all geocodes with the given valueName (case-insensitive)."""
        wanted = name.lower()
        return [value for vn, value in self.geocodes if vn.lower() == wanted]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'area_desc': self.area_desc,
            'location_codes': list(self.location_codes),
            'polygons': [[list(p) for p in poly] for poly in self.polygons],
            'circles': [list(c) for c in self.circles],
            'geocodes': [list(g) for g in self.geocodes],
            'altitude': self.altitude,
            'ceiling': self.ceiling
        }


@dataclass(frozen=True)
class CAPInfo:
    """Alert information block (one language / rendition)."""
    language: str = 'en-US'
    categories: FrozenSet[CAPCategory] = frozenset()
    event: str = ''
    response_types: Tuple[CAPResponseType, ...] = ()
    urgency: CAPUrgency = CAPUrgency.UNKNOWN
    severity: CAPSeverity = CAPSeverity.UNKNOWN
    certainty: CAPCertainty = CAPCertainty.UNKNOWN
    audience: Optional[str] = None
    event_codes: Tuple[ValuePair, ...] = ()
    effective: Optional[datetime] = None
    onset: Optional[datetime] = None
    expires: Optional[datetime] = None
    sender_name: Optional[str] = None
    headline: Optional[str] = None
    description: Optional[str] = None
    instruction: Optional[str] = None
    web: Optional[str] = None
    contact: Optional[str] = None
    parameters: Tuple[ValuePair, ...] = ()
    resources: Tuple[CAPResource, ...] = ()
    areas: Tuple[CAPArea, ...] = ()

    def get_parameter(self, name: str) -> Optional[str]:
        """First parameter value with the given valueName (case-insensitive)."""
        wanted = name.lower()
        for vn, value in self.parameters:
            if vn.lower() == wanted:
                return value
        return None

    def has_parameter(self, name: str) -> bool:
        wanted = name.lower()
        return any(vn.lower() == wanted for vn, _ in self.parameters)

    def get_event_code(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for vn, value in self.event_codes:
            if vn.lower() == wanted:
                return value
        return None

    def channel_enabled(self, handling: str) -> bool:
        """True when a routing parameter is set to 'Broadcast'."""
        wanted = handling.lower()
        return any(
            vn.lower() == wanted and value.strip().lower() == BROADCAST.lower()
            for vn, value in self.parameters
        )

    def location_codes(self) -> List[str]:
        """Location codes across all areas, direct and from SAME geocodes."""
        codes = []
        for area in self.areas:
            codes.extend(area.location_codes)
            codes.extend(area.geocode_values(SAME_GEOCODE))
        return codes

    def to_dict(self) -> Dict[str, Any]:
        return {
            'language': self.language,
            'categories': [c.value for c in CAPCategory if c in self.categories],
            'event': self.event,
            'response_types': [r.value for r in self.response_types],
            'urgency': self.urgency.value,
            'severity': self.severity.value,
            'certainty': self.certainty.value,
            'audience': self.audience,
            'event_codes': [list(ec) for ec in self.event_codes],
            'effective': _iso(self.effective),
            'onset': _iso(self.onset),
            'expires': _iso(self.expires),
            'sender_name': self.sender_name,
            'headline': self.headline,
            'description': self.description,
            'instruction': self.instruction,
            'web': self.web,
            'contact': self.contact,
            'parameters': [list(p) for p in self.parameters],
            'resources': [r.to_dict() for r in self.resources],
            'areas': [a.to_dict() for a in self.areas]
        }


@dataclass(frozen=True)
class CAPAlert:
    """
    Root CAP alert message.

    A CAP alert contains:
    - Header elements (identifier, sender, status, etc.)
    - One or more info blocks (language-specific content)
    - Each info block has one or more area definitions

    `identifier` and `sent` are None only on hand-assembled alerts that have
    not been through the builder; encoding such an alert fails.
    """
    identifier: Optional[str] = None
    sender: str = ''
    sent: Optional[datetime] = None
    status: CAPStatus = CAPStatus.TEST
    msg_type: CAPMsgType = CAPMsgType.ALERT
    scope: CAPScope = CAPScope.PUBLIC
    restriction: Optional[str] = None
    addresses: Tuple[str, ...] = ()
    codes: Tuple[str, ...] = ()
    note: Optional[str] = None
    references: Tuple[Reference, ...] = ()
    incidents: Tuple[str, ...] = ()
    info: Tuple[CAPInfo, ...] = field(default_factory=tuple)

    @property
    def is_actual(self) -> bool:
        return self.status == CAPStatus.ACTUAL

    @property
    def primary_info(self) -> Optional[CAPInfo]:
        """Get primary (first) info block."""
        return self.info[0] if self.info else None

    def reference(self) -> Reference:
        """
        Reference pointing at this alert, for use in an Update or Cancel.

        Raises:
            ValueError: If identifier or sent is not set
        """
        if not self.identifier or self.sent is None:
            raise ValueError("Alert needs an identifier and sent time to be referenced")
        return Reference(sender=self.sender, identifier=self.identifier, sent=self.sent)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'identifier': self.identifier,
            'sender': self.sender,
            'sent': _iso(self.sent),
            'status': self.status.value,
            'msg_type': self.msg_type.value,
            'scope': self.scope.value,
            'restriction': self.restriction,
            'addresses': list(self.addresses),
            'codes': list(self.codes),
            'note': self.note,
            'references': [r.to_cap() for r in self.references],
            'incidents': list(self.incidents),
            'info': [i.to_dict() for i in self.info]
        }
