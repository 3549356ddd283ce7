"""
EAS event and originator codes per 47 CFR 11.31

Categories:
- national: Presidential/national emergency
- weather: NWS weather alerts
- civil: State/local civil emergencies
- test: Test alerts
"""

from typing import Dict


def _event(name: str, category: str, originator: str) -> Dict[str, str]:
    return {'name': name, 'category': category, 'originator': originator}


EAS_EVENT_CODES = {
    # national
    'EAN': _event('Emergency Action Notification', 'national', 'PEP'),
    'EAT': _event('Emergency Action Termination', 'national', 'PEP'),
    'NIC': _event('National Information Center', 'national', 'PEP'),

    # weather warnings
    'TOR': _event('Tornado Warning', 'weather', 'WXR'),
    'SVR': _event('Severe Thunderstorm Warning', 'weather', 'WXR'),
    'FFW': _event('Flash Flood Warning', 'weather', 'WXR'),
    'FLW': _event('Flood Warning', 'weather', 'WXR'),
    'CFW': _event('Coastal Flood Warning', 'weather', 'WXR'),
    'SMW': _event('Special Marine Warning', 'weather', 'WXR'),
    'EWW': _event('Extreme Wind Warning', 'weather', 'WXR'),
    'HWW': _event('High Wind Warning', 'weather', 'WXR'),
    'WSW': _event('Winter Storm Warning', 'weather', 'WXR'),
    'BZW': _event('Blizzard Warning', 'weather', 'WXR'),
    'ICW': _event('Ice Storm Warning', 'weather', 'WXR'),
    'WCW': _event('Wind Chill Warning', 'weather', 'WXR'),
    'SQW': _event('Snow Squall Warning', 'weather', 'WXR'),
    'EHW': _event('Excessive Heat Warning', 'weather', 'WXR'),
    'HUW': _event('Hurricane Warning', 'weather', 'WXR'),
    'TRW': _event('Tropical Storm Warning', 'weather', 'WXR'),
    'SSW': _event('Storm Surge Warning', 'weather', 'WXR'),
    'TSW': _event('Tsunami Warning', 'weather', 'WXR'),
    'DSW': _event('Dust Storm Warning', 'weather', 'WXR'),
    'FRW': _event('Fire Warning', 'weather', 'WXR'),
    'AVW': _event('Avalanche Warning', 'weather', 'WXR'),
    'EQW': _event('Earthquake Warning', 'weather', 'WXR'),
    'VOW': _event('Volcano Warning', 'weather', 'WXR'),

    # weather watches and statements
    'TOA': _event('Tornado Watch', 'weather', 'WXR'),
    'SVA': _event('Severe Thunderstorm Watch', 'weather', 'WXR'),
    'FFA': _event('Flash Flood Watch', 'weather', 'WXR'),
    'FLA': _event('Flood Watch', 'weather', 'WXR'),
    'CFA': _event('Coastal Flood Watch', 'weather', 'WXR'),
    'HWA': _event('High Wind Watch', 'weather', 'WXR'),
    'WSA': _event('Winter Storm Watch', 'weather', 'WXR'),
    'HUA': _event('Hurricane Watch', 'weather', 'WXR'),
    'TRA': _event('Tropical Storm Watch', 'weather', 'WXR'),
    'SSA': _event('Storm Surge Watch', 'weather', 'WXR'),
    'TSA': _event('Tsunami Watch', 'weather', 'WXR'),
    'AVA': _event('Avalanche Watch', 'weather', 'WXR'),
    'SVS': _event('Severe Weather Statement', 'weather', 'WXR'),
    'FFS': _event('Flash Flood Statement', 'weather', 'WXR'),
    'FLS': _event('Flood Statement', 'weather', 'WXR'),
    'HLS': _event('Hurricane Statement', 'weather', 'WXR'),
    'SPS': _event('Special Weather Statement', 'weather', 'WXR'),

    # civil
    'CDW': _event('Civil Danger Warning', 'civil', 'CIV'),
    'CEM': _event('Civil Emergency Message', 'civil', 'CIV'),
    'LAE': _event('Local Area Emergency', 'civil', 'CIV'),
    'LEW': _event('Law Enforcement Warning', 'civil', 'CIV'),
    'CAE': _event('Child Abduction Emergency', 'civil', 'CIV'),
    'BLU': _event('Blue Alert', 'civil', 'CIV'),
    'SPW': _event('Shelter in Place Warning', 'civil', 'CIV'),
    'EVA': _event('Evacuation Immediate', 'civil', 'CIV'),
    'EVI': _event('Evacuation Immediate', 'civil', 'CIV'),
    'NUW': _event('Nuclear Power Plant Warning', 'civil', 'CIV'),
    'RHW': _event('Radiological Hazard Warning', 'civil', 'CIV'),
    'HMW': _event('Hazardous Materials Warning', 'civil', 'CIV'),
    'TOE': _event('911 Telephone Outage Emergency', 'civil', 'CIV'),
    'ADR': _event('Administrative Message', 'civil', 'EAS'),

    # tests
    'RWT': _event('Required Weekly Test', 'test', 'EAS'),
    'RMT': _event('Required Monthly Test', 'test', 'EAS'),
    'NPT': _event('National Periodic Test', 'test', 'PEP'),
    'NAT': _event('National Audible Test', 'test', 'PEP'),
    'NST': _event('National Silent Test', 'test', 'PEP'),
    'DMO': _event('Practice/Demo Warning', 'test', 'EAS'),
}


ORIGINATOR_CODES = {
    'PEP': 'Primary Entry Point System',
    'CIV': 'Civil Authorities',
    'WXR': 'National Weather Service',
    'EAS': 'EAS Participant',
}


def is_known_event(code: str) -> bool:
    return code.strip().upper() in EAS_EVENT_CODES


def get_event_name(code: str) -> str:
    """Get human-readable name for an event code."""
    code = code.upper()
    if code in EAS_EVENT_CODES:
        return EAS_EVENT_CODES[code]['name']
    return f"Unknown event: {code}"


def get_originator_name(code: str) -> str:
    """Get human-readable name of an originator code."""
    code = code.upper()
    if code in ORIGINATOR_CODES:
        return ORIGINATOR_CODES[code]
    return f"Unknown originator: {code}"


def get_events_by_category(category: str) -> Dict[str, Dict[str, str]]:
    """Get all event codes for a category."""
    return {
        code: info for code, info in EAS_EVENT_CODES.items()
        if info['category'] == category
    }
