# EAS (Emergency Alert System) codes and header preview
from .event_codes import (
    EAS_EVENT_CODES, ORIGINATOR_CODES,
    get_event_name, get_originator_name, get_events_by_category, is_known_event
)
from .header import EasHeader

__all__ = [
    'EAS_EVENT_CODES', 'ORIGINATOR_CODES',
    'get_event_name', 'get_originator_name', 'get_events_by_category', 'is_known_event',
    'EasHeader'
]
