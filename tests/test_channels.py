"""
Tests for channel routing configs
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from ipaws_alert.cap import AlertBuilder, CAPStatus
from ipaws_alert.cap.models import WEA_SHORT_TEXT, WEA_LONG_TEXT
from ipaws_alert.channels import (
    WeaChannel, EasChannel, NwemChannel,
    WEA_HANDLING, EAS_HANDLING, NWEM_HANDLING, EAS_ORG_PARAMETER,
)

from conftest import NOW


def build_with(*channels, codes=('042001',)):
    def configure(info):
        info.with_event('Civil Emergency Message').with_effective(NOW)
        if codes:
            info.add_location_codes(*codes)
        for channel in channels:
            info.apply_channel(channel)

    return (
        AlertBuilder()
        .with_sender('ops@county.example.gov')
        .with_sent(NOW)
        .with_status(CAPStatus.ACTUAL)
        .add_info(configure)
        .build()
    )


class TestWeaChannel:
    """Tests for WEA routing."""

    def test_apply(self):
        info = build_with(WeaChannel(short_text='Boil water advisory', long_text='Boil all tap water.')).info[0]

        assert info.channel_enabled(WEA_HANDLING)
        assert info.get_parameter(WEA_SHORT_TEXT) == 'Boil water advisory'
        assert info.get_parameter(WEA_LONG_TEXT) == 'Boil all tap water.'

    def test_embedded_contact_appended(self):
        channel = WeaChannel(
            long_text='Boil all tap water.',
            embedded_phone='555-0100',
            embedded_url='https://county.example.gov/water'
        )
        assert channel.full_long_text() == 'Boil all tap water. 555-0100 https://county.example.gov/water'

        info = build_with(channel).info[0]
        assert info.get_parameter(WEA_LONG_TEXT).endswith('https://county.example.gov/water')

    def test_embedded_contact_without_long_text(self):
        channel = WeaChannel(embedded_url='https://county.example.gov')
        assert channel.full_long_text() == 'https://county.example.gov'

    def test_disabled(self):
        info = build_with(WeaChannel(enabled=False, short_text='ignored')).info[0]
        assert info.parameters == ()


class TestEasChannel:
    """Tests for EAS routing."""

    def test_apply(self):
        info = build_with(EasChannel(event_code='cem', org_code='CIV')).info[0]

        assert info.channel_enabled(EAS_HANDLING)
        assert info.get_parameter(EAS_ORG_PARAMETER) == 'CIV'
        assert info.get_event_code('SAME') == 'CEM'
        assert len(info.areas) == 1

    def test_location_override_adds_area(self):
        info = build_with(EasChannel(event_code='CEM', location_codes=['042003', '042005'])).info[0]

        assert len(info.areas) == 2
        assert info.areas[1].area_desc == 'EAS target area'
        assert info.areas[1].location_codes == ('042003', '042005')

    def test_disabled(self):
        info = build_with(EasChannel(enabled=False, event_code='CEM')).info[0]
        assert info.parameters == ()
        assert info.event_codes == ()

    def test_header_for(self):
        channel = EasChannel(event_code='CEM', org_code='CIV', callsign='KXYZ/FM', purge_time='0015')
        alert = build_with(channel)
        header = channel.header_for(alert)

        assert header.to_string() == 'ZCZC-CIV-CEM-042001+0015-1521800-KXYZ/FM-'

    def test_header_for_uses_channel_locations(self):
        channel = EasChannel(event_code='CEM', location_codes=['042009'])
        alert = build_with(channel)
        assert channel.header_for(alert).locations == ['042009']

    def test_header_without_locations(self):
        channel = EasChannel(event_code='CEM')
        alert = build_with(channel, codes=())
        with pytest.raises(ValueError):
            channel.header_for(alert)


class TestNwemChannel:
    """Tests for NWEM routing."""

    def test_apply(self):
        vtec = '/O.NEW.KCTP.TO.W.0012.250601T1800Z-250601T1900Z/'
        info = build_with(NwemChannel(vtec=vtec, hvtec='/00000.N.ER.000000T0000Z.000000T0000Z.000000T0000Z.OO/',
                                      ugc_codes=['PAZ001', 'PAZ002'], product_id='TORCTP')).info[0]

        assert info.channel_enabled(NWEM_HANDLING)
        assert info.get_parameter('VTEC') == vtec
        assert info.has_parameter('H-VTEC')
        assert info.get_parameter('PIL') == 'TORCTP'
        ugc_area = info.areas[1]
        assert ugc_area.area_desc == 'UGC:PAZ001,PAZ002'
        assert ugc_area.geocode_values('UGC') == ['PAZ001', 'PAZ002']

    def test_minimal(self):
        info = build_with(NwemChannel()).info[0]
        assert info.parameters == ((NWEM_HANDLING, 'Broadcast'),)
        assert len(info.areas) == 1

    def test_disabled(self):
        info = build_with(NwemChannel(enabled=False, vtec='/O.NEW/')).info[0]
        assert info.parameters == ()


class TestCombinedChannels:
    """All channels on one info block."""

    def test_all_enabled(self):
        info = build_with(WeaChannel(short_text='Alert'), EasChannel(event_code='CEM'), NwemChannel()).info[0]
        assert info.channel_enabled(WEA_HANDLING)
        assert info.channel_enabled(EAS_HANDLING)
        assert info.channel_enabled(NWEM_HANDLING)
