"""
Chained builders for well-formed CAP alerts.

Usage:
    alert = (
        AlertBuilder()
        .with_sender('w-nws.webmaster@noaa.gov')
        .with_status(CAPStatus.TEST)
        .add_info(lambda info: info
            .with_event('Tornado Warning')
            .add_category(CAPCategory.MET)
            .with_urgency(CAPUrgency.IMMEDIATE)
            .with_severity(CAPSeverity.EXTREME)
            .with_certainty(CAPCertainty.OBSERVED)
            .with_headline('Tornado Warning for Example County')
            .with_expiry_duration(timedelta(hours=1))
            .add_location_codes('042001')
            .add_wea_routing()
            .add_eas_routing())
        .build()
    )

Builders never validate; run `ipaws_alert.cap.validator.validate` on the
result.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .models import (
    CAPAlert, CAPInfo, CAPArea, CAPResource, Reference,
    CAPStatus, CAPMsgType, CAPScope, CAPCategory, CAPResponseType,
    CAPUrgency, CAPSeverity, CAPCertainty,
    IPAWS_CODE, WEA_HANDLING, EAS_HANDLING, NWEM_HANDLING, BROADCAST,
    WEA_SHORT_TEXT, WEA_LONG_TEXT,
    enum_from_text, parse_cap_datetime,
)


def _utc_now() -> datetime:
    # CAP timestamps carry whole seconds
    return datetime.now(timezone.utc).replace(microsecond=0)


def generate_identifier(sender: str, sent: datetime) -> str:
    """
    Build a unique identifier: {sender-domain}-{YYYYMMDDHHMMSS}-{8 hex}.
    """
    domain = sender.split('@', 1)[1] if '@' in sender else sender
    domain = domain.replace(' ', '') or 'alert'
    return f"{domain}-{sent.strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:8]}"


class AreaBuilder:
    """Builder for a CAP <area> block."""

    def __init__(self):
        self._area_desc: Optional[str] = None
        self._location_codes: List[str] = []
        self._polygons: List[Tuple[Tuple[float, float], ...]] = []
        self._circles: List[Tuple[float, float, float]] = []
        self._geocodes: List[Tuple[str, str]] = []
        self._altitude: Optional[float] = None
        self._ceiling: Optional[float] = None

    def with_description(self, description: str) -> 'AreaBuilder':
        self._area_desc = description
        return self

    def add_location_code(self, code: str) -> 'AreaBuilder':
        self._location_codes.append(code)
        return self

    def add_polygon(self, points: Iterable[Tuple[float, float]]) -> 'AreaBuilder':
        """Add a polygon ring; closed automatically when first != last."""
        ring = [(float(lat), float(lon)) for lat, lon in points]
        if ring and ring[0] != ring[-1]:
            ring.append(ring[0])
        self._polygons.append(tuple(ring))
        return self

    def add_circle(self, lat: float, lon: float, radius_km: float) -> 'AreaBuilder':
        self._circles.append((float(lat), float(lon), float(radius_km)))
        return self

    def add_geocode(self, value_name: str, value: str) -> 'AreaBuilder':
        self._geocodes.append((value_name, value))
        return self

    def with_altitude(self, altitude: float, ceiling: Optional[float] = None) -> 'AreaBuilder':
        self._altitude = float(altitude)
        self._ceiling = float(ceiling) if ceiling is not None else None
        return self

    def build(self) -> CAPArea:
        return CAPArea(
            area_desc=self._area_desc,
            location_codes=tuple(self._location_codes),
            polygons=tuple(self._polygons),
            circles=tuple(self._circles),
            geocodes=tuple(self._geocodes),
            altitude=self._altitude,
            ceiling=self._ceiling
        )


class InfoBuilder:
    """Builder for a single CAP <info> block."""

    def __init__(self):
        self._language = 'en-US'
        self._categories: set = set()
        self._event = ''
        self._response_types: List[CAPResponseType] = []
        self._urgency = CAPUrgency.UNKNOWN
        self._severity = CAPSeverity.UNKNOWN
        self._certainty = CAPCertainty.UNKNOWN
        self._audience: Optional[str] = None
        self._event_codes: List[Tuple[str, str]] = []
        self._effective: Optional[datetime] = None
        self._onset: Optional[datetime] = None
        self._expires: Optional[datetime] = None
        self._sender_name: Optional[str] = None
        self._headline: Optional[str] = None
        self._description: Optional[str] = None
        self._instruction: Optional[str] = None
        self._web: Optional[str] = None
        self._contact: Optional[str] = None
        self._parameters: List[Tuple[str, str]] = []
        self._resources: List[CAPResource] = []
        self._areas: List[CAPArea] = []

    # classification

    def with_language(self, language: str) -> 'InfoBuilder':
        self._language = language
        return self

    def add_category(self, *categories: CAPCategory) -> 'InfoBuilder':
        self._categories.update(categories)
        return self

    def with_event(self, event: str) -> 'InfoBuilder':
        self._event = event
        return self

    def add_response_type(self, response_type: CAPResponseType) -> 'InfoBuilder':
        self._response_types.append(response_type)
        return self

    def with_urgency(self, urgency: CAPUrgency) -> 'InfoBuilder':
        self._urgency = urgency
        return self

    def with_severity(self, severity: CAPSeverity) -> 'InfoBuilder':
        self._severity = severity
        return self

    def with_certainty(self, certainty: CAPCertainty) -> 'InfoBuilder':
        self._certainty = certainty
        return self

    def with_audience(self, audience: str) -> 'InfoBuilder':
        self._audience = audience
        return self

    def add_event_code(self, value_name: str, value: str) -> 'InfoBuilder':
        self._event_codes.append((value_name, value))
        return self

    # timing

    def with_effective(self, effective: datetime) -> 'InfoBuilder':
        self._effective = effective
        return self

    def with_onset(self, onset: datetime) -> 'InfoBuilder':
        self._onset = onset
        return self

    def with_expiry(self, expires: datetime) -> 'InfoBuilder':
        self._expires = expires
        return self

    def with_expiry_duration(self, duration: timedelta) -> 'InfoBuilder':
        """Set expiry as a duration from now."""
        self._expires = _utc_now() + duration
        return self

    # content

    def with_sender_name(self, name: str) -> 'InfoBuilder':
        self._sender_name = name
        return self

    def with_headline(self, headline: str) -> 'InfoBuilder':
        self._headline = headline
        return self

    def with_description(self, description: str) -> 'InfoBuilder':
        self._description = description
        return self

    def with_instruction(self, instruction: str) -> 'InfoBuilder':
        self._instruction = instruction
        return self

    def with_web(self, web: str) -> 'InfoBuilder':
        self._web = web
        return self

    def with_contact(self, contact: str) -> 'InfoBuilder':
        self._contact = contact
        return self

    def add_resource(self, resource: CAPResource) -> 'InfoBuilder':
        self._resources.append(resource)
        return self

    # parameters / routing

    def add_parameter(self, value_name: str, value: str) -> 'InfoBuilder':
        self._parameters.append((value_name, value))
        return self

    def add_wea_routing(
        self,
        short_text: Optional[str] = None,
        long_text: Optional[str] = None
    ) -> 'InfoBuilder':
        """Route to the WEA channel, with optional 90/360 char handset text."""
        self._parameters.append((WEA_HANDLING, BROADCAST))
        if short_text is not None:
            self._parameters.append((WEA_SHORT_TEXT, short_text))
        if long_text is not None:
            self._parameters.append((WEA_LONG_TEXT, long_text))
        return self

    def add_eas_routing(self) -> 'InfoBuilder':
        self._parameters.append((EAS_HANDLING, BROADCAST))
        return self

    def add_nwem_routing(self) -> 'InfoBuilder':
        self._parameters.append((NWEM_HANDLING, BROADCAST))
        return self

    def apply_channel(self, channel) -> 'InfoBuilder':
        """Apply a channel config from `ipaws_alert.channels`."""
        channel.apply(self)
        return self

    # areas

    def add_area(self, configure: Callable[[AreaBuilder], Any]) -> 'InfoBuilder':
        """Add an area configured by a callable receiving an AreaBuilder."""
        builder = AreaBuilder()
        configure(builder)
        self._areas.append(builder.build())
        return self

    def add_location_codes(self, *codes: str) -> 'InfoBuilder':
        """Shorthand: add an area holding only the given location codes."""
        def configure(area: AreaBuilder):
            for code in codes:
                area.add_location_code(code)
            area.with_description(f"SAME:{','.join(codes)}")
        return self.add_area(configure)

    def build(self) -> CAPInfo:
        return CAPInfo(
            language=self._language,
            categories=frozenset(self._categories or {CAPCategory.OTHER}),
            event=self._event,
            response_types=tuple(self._response_types),
            urgency=self._urgency,
            severity=self._severity,
            certainty=self._certainty,
            audience=self._audience,
            event_codes=tuple(self._event_codes),
            effective=self._effective,
            onset=self._onset,
            expires=self._expires,
            sender_name=self._sender_name,
            headline=self._headline,
            description=self._description,
            instruction=self._instruction,
            web=self._web,
            contact=self._contact,
            parameters=tuple(self._parameters),
            resources=tuple(self._resources),
            areas=tuple(self._areas)
        )


class AlertBuilder:
    """
    Builder for a CAP <alert>.

    build() fills in an identifier, the sent time (now, UTC) and the gateway
    routing code when they were not supplied.
    """

    def __init__(self):
        self._identifier: Optional[str] = None
        self._sender = ''
        self._sent: Optional[datetime] = None
        self._status = CAPStatus.TEST
        self._msg_type = CAPMsgType.ALERT
        self._scope = CAPScope.PUBLIC
        self._restriction: Optional[str] = None
        self._addresses: List[str] = []
        self._codes: List[str] = []
        self._note: Optional[str] = None
        self._references: List[Reference] = []
        self._incidents: List[str] = []
        self._info_builders: List[InfoBuilder] = []

    @classmethod
    def cancel_of(cls, original: CAPAlert) -> 'AlertBuilder':
        """Start a Cancel message referencing `original`."""
        return cls._follow_up(original, CAPMsgType.CANCEL)

    @classmethod
    def update_of(cls, original: CAPAlert) -> 'AlertBuilder':
        """Start an Update message referencing `original`."""
        return cls._follow_up(original, CAPMsgType.UPDATE)

    @classmethod
    def _follow_up(cls, original: CAPAlert, msg_type: CAPMsgType) -> 'AlertBuilder':
        builder = (
            cls()
            .with_sender(original.sender)
            .with_status(original.status)
            .with_msg_type(msg_type)
            .with_scope(original.scope)
            .add_reference_to(original)
        )
        for incident in original.incidents:
            builder.add_incident(incident)
        return builder

    def with_identifier(self, identifier: str) -> 'AlertBuilder':
        self._identifier = identifier
        return self

    def with_sender(self, sender: str) -> 'AlertBuilder':
        self._sender = sender
        return self

    def with_sent(self, sent: datetime) -> 'AlertBuilder':
        self._sent = sent
        return self

    def with_status(self, status: CAPStatus) -> 'AlertBuilder':
        self._status = status
        return self

    def with_msg_type(self, msg_type: CAPMsgType) -> 'AlertBuilder':
        self._msg_type = msg_type
        return self

    def with_scope(self, scope: CAPScope) -> 'AlertBuilder':
        self._scope = scope
        return self

    def with_restriction(self, restriction: str) -> 'AlertBuilder':
        self._restriction = restriction
        return self

    def add_address(self, address: str) -> 'AlertBuilder':
        self._addresses.append(address)
        return self

    def add_code(self, code: str) -> 'AlertBuilder':
        self._codes.append(code)
        return self

    def with_note(self, note: str) -> 'AlertBuilder':
        self._note = note
        return self

    def add_reference(self, sender: str, identifier: str, sent: datetime) -> 'AlertBuilder':
        """Reference a prior message (required for Update and Cancel)."""
        self._references.append(Reference(sender=sender, identifier=identifier, sent=sent))
        return self

    def add_reference_to(self, alert: CAPAlert) -> 'AlertBuilder':
        self._references.append(alert.reference())
        return self

    def add_incident(self, incident: str) -> 'AlertBuilder':
        self._incidents.append(incident)
        return self

    def add_info(self, configure: Callable[[InfoBuilder], Any]) -> 'AlertBuilder':
        """Add an info block configured by a callable receiving an InfoBuilder."""
        builder = InfoBuilder()
        configure(builder)
        self._info_builders.append(builder)
        return self

    def build(self) -> CAPAlert:
        sent = self._sent or _utc_now()
        identifier = self._identifier
        if not identifier or not identifier.strip():
            identifier = generate_identifier(self._sender, sent)

        codes = list(self._codes)
        if IPAWS_CODE not in codes:
            codes.insert(0, IPAWS_CODE)

        return CAPAlert(
            identifier=identifier,
            sender=self._sender,
            sent=sent,
            status=self._status,
            msg_type=self._msg_type,
            scope=self._scope,
            restriction=self._restriction,
            addresses=tuple(self._addresses),
            codes=tuple(codes),
            note=self._note,
            references=tuple(self._references),
            incidents=tuple(self._incidents),
            info=tuple(b.build() for b in self._info_builders)
        )


def _pairs(raw: Any) -> List[Tuple[str, str]]:
    """Accept [[name, value], ...], [{'name':..,'value':..}] or {name: value}."""
    if not raw:
        return []
    if isinstance(raw, dict):
        return [(str(k), str(v)) for k, v in raw.items()]
    pairs = []
    for item in raw:
        if isinstance(item, dict):
            pairs.append((str(item.get('name', item.get('valueName', ''))), str(item.get('value', ''))))
        else:
            name, value = item
            pairs.append((str(name), str(value)))
    return pairs


def _optional_time(data: Dict[str, Any], key: str) -> Optional[datetime]:
    value = data.get(key)
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    return parse_cap_datetime(value)


def _apply_area(area: AreaBuilder, data: Dict[str, Any]):
    if data.get('area_desc'):
        area.with_description(data['area_desc'])

    # handle locations as string (comma-separated) or list
    codes = data.get('location_codes', [])
    if isinstance(codes, str):
        codes = [c.strip() for c in codes.replace(',', ' ').split()]
    for code in codes:
        area.add_location_code(code)

    for polygon in data.get('polygons', []):
        area.add_polygon(polygon)
    for circle in data.get('circles', []):
        lat, lon, radius = circle
        area.add_circle(lat, lon, radius)
    for name, value in _pairs(data.get('geocodes')):
        area.add_geocode(name, value)
    if data.get('altitude') is not None:
        area.with_altitude(data['altitude'], data.get('ceiling'))


def _apply_info(info: InfoBuilder, data: Dict[str, Any]):
    info.with_language(data.get('language', 'en-US'))
    for cat in data.get('categories', []):
        info.add_category(enum_from_text(CAPCategory, cat))
    info.with_event(data.get('event', ''))
    for rt in data.get('response_types', []):
        info.add_response_type(enum_from_text(CAPResponseType, rt))
    info.with_urgency(enum_from_text(CAPUrgency, data.get('urgency', 'Unknown')))
    info.with_severity(enum_from_text(CAPSeverity, data.get('severity', 'Unknown')))
    info.with_certainty(enum_from_text(CAPCertainty, data.get('certainty', 'Unknown')))

    for key, setter in (
        ('audience', info.with_audience),
        ('sender_name', info.with_sender_name),
        ('headline', info.with_headline),
        ('description', info.with_description),
        ('instruction', info.with_instruction),
        ('web', info.with_web),
        ('contact', info.with_contact),
    ):
        if data.get(key) is not None:
            setter(data[key])

    effective = _optional_time(data, 'effective')
    if effective:
        info.with_effective(effective)
    onset = _optional_time(data, 'onset')
    if onset:
        info.with_onset(onset)
    expires = _optional_time(data, 'expires')
    if expires:
        info.with_expiry(expires)
    elif data.get('expires_in_minutes'):
        info.with_expiry_duration(timedelta(minutes=int(data['expires_in_minutes'])))

    for name, value in _pairs(data.get('event_codes')):
        info.add_event_code(name, value)
    for name, value in _pairs(data.get('parameters')):
        info.add_parameter(name, value)

    channels = data.get('channels', {})
    if channels.get('wea'):
        wea = channels['wea'] if isinstance(channels['wea'], dict) else {}
        info.add_wea_routing(wea.get('short_text'), wea.get('long_text'))
    if channels.get('eas'):
        info.add_eas_routing()
    if channels.get('nwem'):
        info.add_nwem_routing()

    for res in data.get('resources', []):
        info.add_resource(CAPResource(
            resource_desc=res.get('resource_desc', ''),
            mime_type=res.get('mime_type', ''),
            size=int(res.get('size', -1)),
            uri=res.get('uri'),
            deref_uri=res.get('deref_uri'),
            digest=res.get('digest')
        ))

    for area_data in data.get('areas', []):
        info.add_area(lambda area, d=area_data: _apply_area(area, d))


def alert_from_dict(data: Dict[str, Any]) -> CAPAlert:
    """
    Build an alert from a JSON-style dictionary.

    Keys follow `CAPAlert.to_dict()`; enum values use their CAP spelling
    ('Actual', 'Immediate', ...). An 'info' list of dicts supplies the info
    blocks, each with an 'areas' list and an optional 'channels' mapping
    ({'wea': {'short_text': ...}, 'eas': true, 'nwem': true}).

    Raises:
        ValueError: On unknown enum values or malformed timestamps
    """
    builder = AlertBuilder()
    if data.get('identifier'):
        builder.with_identifier(data['identifier'])
    builder.with_sender(data.get('sender', ''))
    sent = _optional_time(data, 'sent')
    if sent:
        builder.with_sent(sent)
    builder.with_status(enum_from_text(CAPStatus, data.get('status', 'Test')))
    builder.with_msg_type(enum_from_text(CAPMsgType, data.get('msg_type', 'Alert')))
    builder.with_scope(enum_from_text(CAPScope, data.get('scope', 'Public')))
    if data.get('restriction'):
        builder.with_restriction(data['restriction'])

    addresses = data.get('addresses', [])
    if isinstance(addresses, str):
        addresses = addresses.split()
    for address in addresses:
        builder.add_address(address)

    for code in data.get('codes', []):
        builder.add_code(code)
    if data.get('note'):
        builder.with_note(data['note'])

    for ref in data.get('references', []):
        if isinstance(ref, str):
            parsed = Reference.parse(ref)
            builder.add_reference(parsed.sender, parsed.identifier, parsed.sent)
        else:
            builder.add_reference(ref['sender'], ref['identifier'], parse_cap_datetime(ref['sent']))
    for incident in data.get('incidents', []):
        builder.add_incident(incident)

    for info_data in data.get('info', []):
        builder.add_info(lambda info, d=info_data: _apply_info(info, d))

    return builder.build()
