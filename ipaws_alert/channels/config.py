"""
Channel routing configs

Each config describes how one dissemination channel (WEA, EAS, NWEM) is
parameterized in the CAP info block. `apply()` writes the routing
parameters onto an `InfoBuilder`; a disabled config writes nothing.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..cap.builder import InfoBuilder
from ..cap.models import CAPAlert, CAPInfo, SAME_GEOCODE
from ..eas.header import EasHeader


# parameter valueNames read by the gateway and NWS systems
EAS_ORG_PARAMETER = 'EAS-ORG'
VTEC_PARAMETER = 'VTEC'
HVTEC_PARAMETER = 'H-VTEC'
PIL_PARAMETER = 'PIL'
UGC_GEOCODE = 'UGC'


@dataclass
class WeaChannel:
    """
    Wireless Emergency Alerts (cell broadcast).

    short_text maps to CMAMtext (90 chars, WEA 2.0), long_text to
    CMAMlongtext (360 chars, WEA 3.0). When neither is set the gateway uses
    the headline. An embedded phone number or URL is appended to the long
    text, which is where WEA 3.0 handsets pick them up.
    """
    enabled: bool = True
    short_text: Optional[str] = None
    long_text: Optional[str] = None
    embedded_phone: Optional[str] = None
    embedded_url: Optional[str] = None

    channel_name = 'WEA'

    def full_long_text(self) -> Optional[str]:
        extras = [x for x in (self.embedded_phone, self.embedded_url) if x]
        if not extras:
            return self.long_text
        return ' '.join([self.long_text] + extras if self.long_text else extras)

    def apply(self, info: InfoBuilder) -> None:
        if self.enabled:
            info.add_wea_routing(self.short_text, self.full_long_text())


@dataclass
class EasChannel:
    """
    Emergency Alert System (broadcast stations).

    location_codes overrides the targeting derived from the info's areas;
    when given, they are added as an extra area.
    """
    enabled: bool = True
    event_code: Optional[str] = None
    org_code: str = 'WXR'
    location_codes: List[str] = field(default_factory=list)
    purge_time: Optional[str] = None  # HHMM
    callsign: str = 'IPAWS'

    channel_name = 'EAS'

    def apply(self, info: InfoBuilder) -> None:
        if not self.enabled:
            return
        info.add_eas_routing()
        info.add_parameter(EAS_ORG_PARAMETER, self.org_code)
        if self.event_code:
            info.add_event_code(SAME_GEOCODE, self.event_code.upper())
        if self.location_codes:
            codes = list(self.location_codes)

            def configure(area):
                area.with_description('EAS target area')
                for code in codes:
                    area.add_location_code(code)
            info.add_area(configure)

    def header_for(self, alert: CAPAlert, info: Optional[CAPInfo] = None) -> EasHeader:
        """
        Preview the EAS header for an alert routed through this channel.

        Raises:
            ValueError: If no event code or location codes are available
        """
        header = EasHeader.from_info(
            alert,
            info=info,
            originator=self.org_code,
            event=self.event_code,
            callsign=self.callsign,
            locations=list(self.location_codes) or None
        )
        if self.purge_time:
            header = EasHeader(
                originator=header.originator,
                event=header.event,
                locations=header.locations,
                purge_time=self.purge_time,
                issue_time=header.issue_time,
                callsign=header.callsign
            )
        return header


@dataclass
class NwemChannel:
    """
    National Weather Emergency Messages (NOAA Weather Radio).

    vtec is the P-VTEC string, e.g. /O.NEW.KGRR.TO.W.0001.240601T1800Z-240601T2000Z/
    ugc_codes are NWS zone/county codes such as OHZ001.
    """
    enabled: bool = True
    vtec: Optional[str] = None
    hvtec: Optional[str] = None
    ugc_codes: List[str] = field(default_factory=list)
    product_id: Optional[str] = None

    channel_name = 'NWEM'

    def apply(self, info: InfoBuilder) -> None:
        if not self.enabled:
            return
        info.add_nwem_routing()
        if self.vtec:
            info.add_parameter(VTEC_PARAMETER, self.vtec)
        if self.hvtec:
            info.add_parameter(HVTEC_PARAMETER, self.hvtec)
        if self.product_id:
            info.add_parameter(PIL_PARAMETER, self.product_id)
        if self.ugc_codes:
            codes = list(self.ugc_codes)

            def configure(area):
                area.with_description(f"UGC:{','.join(codes)}")
                for code in codes:
                    area.add_geocode(UGC_GEOCODE, code)
            info.add_area(configure)
