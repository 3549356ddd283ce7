"""
EAS header preview per 47 CFR 11.31

Header format: ZCZC-ORG-EEE-PSSCCC[-PSSCCC...]+TTTT-JJJHHMM-LLLLLLLL-

Where:
- ORG: Originator code (3 chars)
- EEE: Event code (3 chars)
- PSSCCC: Location code(s) - P=part, SS=state, CCC=county FIPS
- TTTT: Purge time in HHMM format
- JJJHHMM: Issue time - Julian day + UTC time
- LLLLLLLL: Callsign (up to 8 chars)

Broadcast stations build this header from the CAP alert the gateway relays;
the preview lets an operator see what an EAS-routed alert will look like.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..cap.models import CAPAlert, CAPInfo, SAME_GEOCODE, as_utc
from .event_codes import EAS_EVENT_CODES


MAX_LOCATIONS = 31
MAX_PURGE_MINUTES = 99 * 60 + 59
DEFAULT_DURATION_MINUTES = 60


@dataclass
class EasHeader:
    """
    Represents a parsed or constructed EAS header.
    """
    originator: str
    event: str
    locations: List[str]
    purge_time: str  # HHMM format
    issue_time: str  # JJJHHMM format
    callsign: str

    # regex for validation
    HEADER_PATTERN = re.compile(
        r'ZCZC-'
        r'([A-Z]{3})-'                  # originator
        r'([A-Z]{3})-'                  # event code
        r'([0-9]{6}(?:-[0-9]{6})*)'     # location codes
        r'\+([0-9]{4})-'                # purge time
        r'([0-9]{7})-'                  # issue time
        r'([A-Z0-9/]{1,8})-'            # callsign
    )

    def __post_init__(self):
        """Validate fields after initialization."""
        if not re.fullmatch(r'[A-Z]{3}', self.originator):
            raise ValueError(f"Originator must be 3 letters: {self.originator}")
        if not re.fullmatch(r'[A-Z]{3}', self.event):
            raise ValueError(f"Event code must be 3 letters: {self.event}")
        if not self.locations:
            raise ValueError("At least one location code required")
        if len(self.locations) > MAX_LOCATIONS:
            raise ValueError(f"At most {MAX_LOCATIONS} location codes allowed, got {len(self.locations)}")
        for loc in self.locations:
            if not re.fullmatch(r'[0-9]{6}', loc):
                raise ValueError(f"Invalid location code: {loc}")
        if not re.fullmatch(r'[0-9]{4}', self.purge_time):
            raise ValueError(f"Purge time must be HHMM: {self.purge_time}")
        if not re.fullmatch(r'[0-9]{7}', self.issue_time):
            raise ValueError(f"Issue time must be JJJHHMM: {self.issue_time}")
        if not 1 <= len(self.callsign) <= 8:
            raise ValueError(f"Callsign must be 1-8 characters: {self.callsign}")

    @classmethod
    def parse(cls, header: str) -> 'EasHeader':
        """
        Parse an EAS header string.

        Args:
            header: Full header string (with or without ZCZC- prefix)

        Returns:
            EasHeader instance

        Raises:
            ValueError: If the header is malformed
        """
        header = header.strip().upper().replace(' ', '')
        if not header.startswith('ZCZC-'):
            header = f'ZCZC-{header}'
        if not header.endswith('-'):
            header = f'{header}-'

        match = cls.HEADER_PATTERN.fullmatch(header)
        if not match:
            raise ValueError(f"Invalid EAS header format: {header}")

        return cls(
            originator=match.group(1),
            event=match.group(2),
            locations=match.group(3).split('-'),
            purge_time=match.group(4),
            issue_time=match.group(5),
            callsign=match.group(6)
        )

    def to_string(self) -> str:
        """Generate the header string."""
        locations_str = '-'.join(self.locations)
        return f"ZCZC-{self.originator}-{self.event}-{locations_str}+{self.purge_time}-{self.issue_time}-{self.callsign}-"

    @classmethod
    def create(
        cls,
        originator: str,
        event: str,
        locations: List[str],
        duration_minutes: int,
        callsign: str,
        issue_datetime: Optional[datetime] = None
    ) -> 'EasHeader':
        """
        Create a header with automatic time calculation.

        Args:
            originator: 3-letter originator code (WXR, PEP, CIV, EAS)
            event: 3-letter event code (TOR, SVR, EAN, etc.)
            locations: List of 6-digit location codes
            duration_minutes: Alert duration in minutes (clamped to 0..9959)
            callsign: Station callsign (max 8 chars)
            issue_datetime: Issue time (defaults to now)

        Returns:
            EasHeader instance
        """
        if issue_datetime is None:
            issue_datetime = datetime.now(timezone.utc)
        issue_datetime = as_utc(issue_datetime)

        # calculate julian day and time
        julian_day = issue_datetime.timetuple().tm_yday
        issue_time = f"{julian_day:03d}{issue_datetime.hour:02d}{issue_datetime.minute:02d}"

        duration_minutes = max(0, min(int(duration_minutes), MAX_PURGE_MINUTES))
        hours, minutes = divmod(duration_minutes, 60)

        return cls(
            originator=originator.upper(),
            event=event.upper(),
            locations=list(locations),
            purge_time=f"{hours:02d}{minutes:02d}",
            issue_time=issue_time,
            callsign=callsign.upper()
        )

    @classmethod
    def from_info(
        cls,
        alert: CAPAlert,
        info: Optional[CAPInfo] = None,
        originator: Optional[str] = None,
        event: Optional[str] = None,
        callsign: str = 'IPAWS',
        locations: Optional[List[str]] = None
    ) -> 'EasHeader':
        """
        Build the header an EAS participant would derive from an alert.

        Args:
            alert: Source alert
            info: Info block to use (defaults to the primary one)
            originator: Originator code (defaults to the event's usual originator, else CIV)
            event: Event code (defaults to the info's SAME event code)
            callsign: Station callsign
            locations: Location codes (defaults to the info's codes, first 31 distinct)

        Raises:
            ValueError: If no event code or location codes can be determined
        """
        info = info or alert.primary_info
        if info is None:
            raise ValueError("Alert has no info block")

        event = event or info.get_event_code(SAME_GEOCODE)
        if not event:
            raise ValueError("Info block has no SAME event code")
        event = event.upper()

        if originator is None:
            originator = EAS_EVENT_CODES.get(event, {}).get('originator', 'CIV')

        if locations is None:
            # distinct, in order
            locations = list(dict.fromkeys(info.location_codes()))[:MAX_LOCATIONS]
        if not locations:
            raise ValueError("Info block has no location codes")

        issue = info.effective or info.onset or alert.sent
        duration = DEFAULT_DURATION_MINUTES
        if info.expires is not None:
            start = issue or datetime.now(timezone.utc)
            duration = int((as_utc(info.expires) - as_utc(start)).total_seconds() // 60)

        return cls.create(
            originator=originator,
            event=event,
            locations=locations,
            duration_minutes=duration,
            callsign=callsign[:8],
            issue_datetime=issue
        )

    def get_expiry_datetime(self, issue_year: Optional[int] = None) -> datetime:
        """
        Calculate when this alert expires.

        Args:
            issue_year: Year to use for calculation (defaults to current year)

        Returns:
            Expiration datetime (UTC)
        """
        if issue_year is None:
            issue_year = datetime.now(timezone.utc).year

        julian_day = int(self.issue_time[:3])
        hour = int(self.issue_time[3:5])
        minute = int(self.issue_time[5:7])

        issue_dt = datetime(issue_year, 1, 1, tzinfo=timezone.utc) + timedelta(days=julian_day - 1)
        issue_dt = issue_dt.replace(hour=hour, minute=minute)

        return issue_dt + timedelta(hours=int(self.purge_time[:2]), minutes=int(self.purge_time[2:4]))

    @property
    def event_name(self) -> str:
        return EAS_EVENT_CODES.get(self.event, {}).get('name', self.event)

    def to_dict(self):
        return {
            'header': self.to_string(),
            'originator': self.originator,
            'event': self.event,
            'event_name': self.event_name,
            'locations': list(self.locations),
            'purge_time': self.purge_time,
            'issue_time': self.issue_time,
            'callsign': self.callsign
        }

    def __str__(self) -> str:
        return self.to_string()
