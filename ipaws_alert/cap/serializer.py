"""
CAP v1.2 XML encoder and decoder

Converts between `CAPAlert` models and CAP XML documents per the OASIS
CAP v1.2 specification.
Reference: http://docs.oasis-open.org/emergency/cap/v1.2/CAP-v1.2.html

Encoding never validates; decoding enforces only the structural
requirements of the schema (required elements, enumerated values, number
and timestamp syntax).
"""

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .models import (
    CAPAlert, CAPInfo, CAPArea, CAPResource, Reference,
    CAPStatus, CAPMsgType, CAPScope, CAPCategory, CAPResponseType,
    CAPUrgency, CAPSeverity, CAPCertainty,
    SAME_GEOCODE, enum_from_text, format_cap_datetime, parse_cap_datetime,
)


CAP_NAMESPACE = 'urn:oasis:names:tc:emergency:cap:1.2'

# CAP namespaces accepted on decode
CAP_NS = {
    'cap': CAP_NAMESPACE,
    'cap11': 'urn:oasis:names:tc:emergency:cap:1.1',
}

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>\n'

# token in an addresses list: "quoted value" or bare word
_ADDRESS_TOKEN = re.compile(r'"([^"]*)"|(\S+)')


class CAPFormatError(ValueError):
    """Malformed CAP document; `element` names the offending element."""

    def __init__(self, message: str, element: Optional[str] = None):
        super().__init__(message)
        self.element = element


class CAPEncodeError(ValueError):
    """Alert is missing a field the wire format requires."""

    def __init__(self, message: str, element: Optional[str] = None):
        super().__init__(message)
        self.element = element


@dataclass(frozen=True)
class EncodeResult:
    """Outcome of `try_encode`: either xml or error is set."""
    xml: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.xml is not None


# ---------------------------------------------------------------------------
# encoding
# ---------------------------------------------------------------------------

def _fmt_number(value: float) -> str:
    # repr is locale independent and round-trips exactly
    return repr(float(value))


def _text(parent: ET.Element, tag: str, value: Optional[str]) -> None:
    ET.SubElement(parent, tag).text = value


def _optional(parent: ET.Element, tag: str, value: Optional[str]) -> None:
    if value is not None:
        ET.SubElement(parent, tag).text = value


def _pair(parent: ET.Element, tag: str, name: str, value: str) -> None:
    elem = ET.SubElement(parent, tag)
    ET.SubElement(elem, 'valueName').text = name
    ET.SubElement(elem, 'value').text = value


def _quote_address(address: str) -> str:
    return f'"{address}"' if ' ' in address else address


def _encode_area(parent: ET.Element, area: CAPArea) -> None:
    elem = ET.SubElement(parent, 'area')
    _text(elem, 'areaDesc', area.area_desc or '')

    for polygon in area.polygons:
        ET.SubElement(elem, 'polygon').text = ' '.join(
            f'{_fmt_number(lat)},{_fmt_number(lon)}' for lat, lon in polygon
        )

    for lat, lon, radius in area.circles:
        ET.SubElement(elem, 'circle').text = (
            f'{_fmt_number(lat)},{_fmt_number(lon)} {_fmt_number(radius)}'
        )

    for name, value in area.geocodes:
        _pair(elem, 'geocode', name, value)

    if area.altitude is not None:
        ET.SubElement(elem, 'altitude').text = _fmt_number(area.altitude)
    if area.ceiling is not None:
        ET.SubElement(elem, 'ceiling').text = _fmt_number(area.ceiling)

    # location codes travel as reserved-name geocodes
    for code in area.location_codes:
        _pair(elem, 'geocode', SAME_GEOCODE, code)


def _encode_resource(parent: ET.Element, resource: CAPResource) -> None:
    elem = ET.SubElement(parent, 'resource')
    _text(elem, 'resourceDesc', resource.resource_desc or '')
    _text(elem, 'mimeType', resource.mime_type or '')
    if resource.size >= 0:
        ET.SubElement(elem, 'size').text = str(resource.size)
    if resource.uri:
        ET.SubElement(elem, 'uri').text = resource.uri
    elif resource.deref_uri:
        ET.SubElement(elem, 'derefUri').text = resource.deref_uri
    _optional(elem, 'digest', resource.digest)


def _encode_info(parent: ET.Element, info: CAPInfo) -> None:
    elem = ET.SubElement(parent, 'info')
    _text(elem, 'language', info.language or '')

    categories = [c for c in CAPCategory if c in info.categories] or [CAPCategory.OTHER]
    for category in categories:
        ET.SubElement(elem, 'category').text = category.value

    _text(elem, 'event', info.event)
    for response_type in info.response_types:
        ET.SubElement(elem, 'responseType').text = response_type.value
    _text(elem, 'urgency', info.urgency.value)
    _text(elem, 'severity', info.severity.value)
    _text(elem, 'certainty', info.certainty.value)
    _optional(elem, 'audience', info.audience)

    for name, value in info.event_codes:
        _pair(elem, 'eventCode', name, value)

    for tag, value in (('effective', info.effective), ('onset', info.onset), ('expires', info.expires)):
        if value is not None:
            ET.SubElement(elem, tag).text = format_cap_datetime(value)

    _optional(elem, 'senderName', info.sender_name)
    _optional(elem, 'headline', info.headline)
    _optional(elem, 'description', info.description)
    _optional(elem, 'instruction', info.instruction)
    _optional(elem, 'web', info.web)
    _optional(elem, 'contact', info.contact)

    for name, value in info.parameters:
        _pair(elem, 'parameter', name, value)

    for resource in info.resources:
        _encode_resource(elem, resource)

    for area in info.areas:
        _encode_area(elem, area)


def encode(alert: CAPAlert, indent: bool = False) -> str:
    """
    Encode an alert as a CAP v1.2 XML document.

    Args:
        alert: Alert to encode
        indent: Pretty-print the document

    Returns:
        XML string with declaration

    Raises:
        CAPEncodeError: If identifier or sent is not set
    """
    if not alert.identifier or not alert.identifier.strip():
        raise CAPEncodeError("Cannot encode alert without identifier", element='identifier')
    if alert.sent is None:
        raise CAPEncodeError("Cannot encode alert without sent time", element='sent')

    root = ET.Element('alert')
    root.set('xmlns', CAP_NAMESPACE)

    _text(root, 'identifier', alert.identifier)
    _text(root, 'sender', alert.sender or '')
    _text(root, 'sent', format_cap_datetime(alert.sent))
    _text(root, 'status', alert.status.value)
    _text(root, 'msgType', alert.msg_type.value)
    _text(root, 'scope', alert.scope.value)
    _optional(root, 'restriction', alert.restriction)
    if alert.addresses:
        _text(root, 'addresses', ' '.join(_quote_address(a) for a in alert.addresses))
    for code in alert.codes:
        ET.SubElement(root, 'code').text = code
    _optional(root, 'note', alert.note)
    if alert.references:
        _text(root, 'references', ' '.join(r.to_cap() for r in alert.references))
    if alert.incidents:
        _text(root, 'incidents', ' '.join(alert.incidents))

    for info in alert.info:
        _encode_info(root, info)

    if indent:
        ET.indent(root)
    return XML_DECLARATION + ET.tostring(root, encoding='unicode')


def try_encode(alert: CAPAlert, indent: bool = False) -> EncodeResult:
    """Encode without raising; the error message is returned instead."""
    try:
        return EncodeResult(xml=encode(alert, indent=indent))
    except CAPEncodeError as e:
        return EncodeResult(error=str(e))


# ---------------------------------------------------------------------------
# decoding
# ---------------------------------------------------------------------------

def _get_text(elem: Optional[ET.Element]) -> Optional[str]:
    """Get element text as received, or None if element doesn't exist."""
    if elem is None:
        return None
    return elem.text or ''


def _find_ns(parent: ET.Element, tag: str) -> Optional[ET.Element]:
    """Find element with namespace fallback."""
    # try CAP 1.2 namespace
    elem = parent.find(f'cap:{tag}', CAP_NS)
    if elem is None:
        # try CAP 1.1 namespace
        elem = parent.find(f'cap11:{tag}', CAP_NS)
    if elem is None:
        # try no namespace
        elem = parent.find(tag)
    return elem


def _findall_ns(parent: ET.Element, tag: str) -> List[ET.Element]:
    """Find all elements with namespace fallback."""
    elems = parent.findall(f'cap:{tag}', CAP_NS)
    if not elems:
        elems = parent.findall(f'cap11:{tag}', CAP_NS)
    if not elems:
        elems = parent.findall(tag)
    return elems


def _optional_text(parent: ET.Element, tag: str) -> Optional[str]:
    return _get_text(_find_ns(parent, tag))


def _optional_token(parent: ET.Element, tag: str) -> Optional[str]:
    """Stripped text for values that are parsed rather than kept verbatim."""
    text = _get_text(_find_ns(parent, tag))
    return None if text is None else text.strip()


def _required_text(parent: ET.Element, tag: str, strip: bool = True) -> str:
    text = _get_text(_find_ns(parent, tag))
    if not text or not text.strip():
        raise CAPFormatError(f"Missing required element: {tag}", element=tag)
    return text.strip() if strip else text


def _required_enum(parent: ET.Element, tag: str, enum_cls):
    text = _required_text(parent, tag)
    return _enum(enum_cls, text, tag)


def _enum(enum_cls, text: str, tag: str):
    try:
        return enum_from_text(enum_cls, text)
    except ValueError:
        raise CAPFormatError(f"Invalid {tag}: '{text}'", element=tag) from None


def _datetime(text: Optional[str], tag: str):
    if not text:
        return None
    try:
        return parse_cap_datetime(text)
    except ValueError:
        raise CAPFormatError(f"Invalid {tag} datetime: '{text}'", element=tag) from None


def _float(text: str, tag: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise CAPFormatError(f"Invalid number in {tag}: '{text}'", element=tag) from None


def _pairs(parent: ET.Element, tag: str) -> List[Tuple[str, str]]:
    pairs = []
    for elem in _findall_ns(parent, tag):
        name = _get_text(_find_ns(elem, 'valueName')) or ''
        pairs.append((name, _get_text(_find_ns(elem, 'value')) or ''))
    return pairs


def _parse_point(text: str, tag: str) -> Tuple[float, float]:
    parts = text.split(',')
    if len(parts) != 2:
        raise CAPFormatError(f"Invalid coordinate in {tag}: '{text}'", element=tag)
    return _float(parts[0], tag), _float(parts[1], tag)


def _parse_polygon(text: str) -> Tuple[Tuple[float, float], ...]:
    return tuple(_parse_point(token, 'polygon') for token in text.split())


def _parse_circle(text: str) -> Tuple[float, float, float]:
    parts = text.split()
    if len(parts) != 2:
        raise CAPFormatError(f"Invalid circle: '{text}'", element='circle')
    lat, lon = _parse_point(parts[0], 'circle')
    return lat, lon, _float(parts[1], 'circle')


def _parse_addresses(text: Optional[str]) -> Tuple[str, ...]:
    if not text:
        return ()
    return tuple(quoted or bare for quoted, bare in _ADDRESS_TOKEN.findall(text))


def _parse_references(text: Optional[str]) -> Tuple[Reference, ...]:
    if not text:
        return ()
    refs = []
    for token in text.split():
        try:
            refs.append(Reference.parse(token))
        except ValueError as e:
            raise CAPFormatError(str(e), element='references') from None
    return tuple(refs)


def _parse_area(area_elem: ET.Element) -> CAPArea:
    """Parse CAP area element."""
    polygons = tuple(
        _parse_polygon(p.text) for p in _findall_ns(area_elem, 'polygon') if p.text and p.text.strip()
    )
    circles = tuple(
        _parse_circle(c.text) for c in _findall_ns(area_elem, 'circle') if c.text and c.text.strip()
    )

    location_codes = []
    geocodes = []
    for name, value in _pairs(area_elem, 'geocode'):
        if name == SAME_GEOCODE:
            location_codes.append(value)
        else:
            geocodes.append((name, value))

    altitude = _optional_token(area_elem, 'altitude')
    ceiling = _optional_token(area_elem, 'ceiling')

    return CAPArea(
        area_desc=_optional_text(area_elem, 'areaDesc'),
        location_codes=tuple(location_codes),
        polygons=polygons,
        circles=circles,
        geocodes=tuple(geocodes),
        altitude=_float(altitude, 'altitude') if altitude else None,
        ceiling=_float(ceiling, 'ceiling') if ceiling else None
    )


def _parse_resource(res_elem: ET.Element) -> CAPResource:
    size_text = _optional_token(res_elem, 'size')
    size = -1
    if size_text:
        try:
            size = int(size_text)
        except ValueError:
            raise CAPFormatError(f"Invalid resource size: '{size_text}'", element='size') from None

    return CAPResource(
        resource_desc=_optional_text(res_elem, 'resourceDesc') or '',
        mime_type=_optional_text(res_elem, 'mimeType') or '',
        size=size,
        uri=_optional_text(res_elem, 'uri'),
        deref_uri=_optional_text(res_elem, 'derefUri'),
        digest=_optional_text(res_elem, 'digest')
    )


def _parse_info(info_elem: ET.Element) -> CAPInfo:
    """Parse CAP info element."""
    categories = set()
    for cat in _findall_ns(info_elem, 'category'):
        if cat.text:
            try:
                categories.add(enum_from_text(CAPCategory, cat.text))
            except ValueError:
                # unknown categories are ignored
                pass

    response_types = tuple(
        _enum(CAPResponseType, rt.text.strip(), 'responseType')
        for rt in _findall_ns(info_elem, 'responseType') if rt.text and rt.text.strip()
    )

    language = _optional_token(info_elem, 'language')

    return CAPInfo(
        language='en-US' if language is None else language,
        categories=frozenset(categories),
        event=_required_text(info_elem, 'event', strip=False),
        response_types=response_types,
        urgency=_required_enum(info_elem, 'urgency', CAPUrgency),
        severity=_required_enum(info_elem, 'severity', CAPSeverity),
        certainty=_required_enum(info_elem, 'certainty', CAPCertainty),
        audience=_optional_text(info_elem, 'audience'),
        event_codes=tuple(_pairs(info_elem, 'eventCode')),
        effective=_datetime(_optional_token(info_elem, 'effective'), 'effective'),
        onset=_datetime(_optional_token(info_elem, 'onset'), 'onset'),
        expires=_datetime(_optional_token(info_elem, 'expires'), 'expires'),
        sender_name=_optional_text(info_elem, 'senderName'),
        headline=_optional_text(info_elem, 'headline'),
        description=_optional_text(info_elem, 'description'),
        instruction=_optional_text(info_elem, 'instruction'),
        web=_optional_text(info_elem, 'web'),
        contact=_optional_text(info_elem, 'contact'),
        parameters=tuple(_pairs(info_elem, 'parameter')),
        resources=tuple(_parse_resource(r) for r in _findall_ns(info_elem, 'resource')),
        areas=tuple(_parse_area(a) for a in _findall_ns(info_elem, 'area'))
    )


def decode(xml: Union[str, bytes]) -> CAPAlert:
    """
    Decode a CAP XML document into a CAPAlert.

    Accepts CAP 1.2, CAP 1.1 and un-namespaced documents.

    Args:
        xml: CAP XML content

    Returns:
        CAPAlert object

    Raises:
        CAPFormatError: If XML is invalid or missing required elements
    """
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise CAPFormatError(f"Invalid XML: {e}") from None

    # handle namespaced root
    tag = root.tag
    if '}' in tag:
        tag = tag.split('}')[1]

    if tag != 'alert':
        raise CAPFormatError(f"Root element must be 'alert', got '{tag}'", element='alert')

    identifier = _required_text(root, 'identifier')
    sender = _required_text(root, 'sender')
    sent = _datetime(_required_text(root, 'sent'), 'sent')
    status = _required_enum(root, 'status', CAPStatus)
    msg_type = _required_enum(root, 'msgType', CAPMsgType)
    scope = _required_enum(root, 'scope', CAPScope)

    codes = tuple(c.text.strip() for c in _findall_ns(root, 'code') if c.text and c.text.strip())
    incidents_text = _optional_text(root, 'incidents')

    return CAPAlert(
        identifier=identifier,
        sender=sender,
        sent=sent,
        status=status,
        msg_type=msg_type,
        scope=scope,
        restriction=_optional_text(root, 'restriction'),
        addresses=_parse_addresses(_optional_text(root, 'addresses')),
        codes=codes,
        note=_optional_text(root, 'note'),
        references=_parse_references(_optional_text(root, 'references')),
        incidents=tuple(incidents_text.split()) if incidents_text else (),
        info=tuple(_parse_info(i) for i in _findall_ns(root, 'info'))
    )


def decode_file(filepath: str) -> CAPAlert:
    """
    Decode a CAP XML file.

    Args:
        filepath: Path to CAP XML file

    Returns:
        CAPAlert object
    """
    with open(filepath, 'rb') as f:
        return decode(f.read())
