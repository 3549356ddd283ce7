"""
Tests for CAP alert validation
"""

import pytest
import sys
import os
from dataclasses import replace
from datetime import timedelta

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from ipaws_alert.cap.models import (
    CAPAlert, CAPArea, CAPStatus, CAPMsgType, CAPScope, CAPUrgency, CAPSeverity, CAPCertainty,
    IPAWS_CODE, WEA_HANDLING, EAS_HANDLING, NWEM_HANDLING, WEA_SHORT_TEXT, WEA_LONG_TEXT,
)
from ipaws_alert.cap.validator import validate, AlertValidationError, FindingSeverity

from conftest import NOW, build_alert


def with_info(alert, **changes):
    return replace(alert, info=(replace(alert.info[0], **changes),))


def with_area(alert, **changes):
    area = replace(alert.info[0].areas[0], **changes)
    return with_info(alert, areas=(area,))


def with_parameters(alert, *parameters):
    return with_info(alert, parameters=tuple(parameters))


class TestValidAlert:
    """The reference alert is clean."""

    def test_no_findings(self, alert):
        result = validate(alert, now=NOW)
        assert result.is_valid
        assert result.findings == []

    def test_validate_does_not_mutate(self, alert):
        before = alert.to_dict()
        validate(replace(alert, identifier=''), now=NOW)
        assert alert.to_dict() == before

    def test_to_dict(self, alert):
        result = validate(replace(alert, sender=''), now=NOW)
        data = result.to_dict()
        assert data['valid'] is False
        assert data['errors'][0]['code'] == 'CAP002'
        assert data['errors'][0]['severity'] == 'Error'
        assert data['warnings'] == []

    def test_raise_if_invalid(self, alert):
        validate(alert, now=NOW).raise_if_invalid()

        result = validate(replace(alert, identifier=None), now=NOW)
        with pytest.raises(AlertValidationError) as exc_info:
            result.raise_if_invalid()
        assert exc_info.value.result is result
        assert 'CAP001' in str(exc_info.value)


class TestAlertRules:
    """Alert-level rules."""

    @pytest.mark.parametrize('identifier', [None, '', '   '])
    def test_identifier_required(self, alert, identifier):
        result = validate(replace(alert, identifier=identifier), now=NOW)
        assert result.codes() == ['CAP001']

    def test_sender_required(self, alert):
        assert validate(replace(alert, sender=''), now=NOW).codes() == ['CAP002']

    def test_sender_not_email(self, alert):
        result = validate(replace(alert, sender='county-eoc'), now=NOW)
        assert result.codes() == ['CAP003']
        assert result.is_valid

    def test_sent_required(self, alert):
        assert validate(replace(alert, sent=None), now=NOW).codes() == ['CAP004']

    def test_sent_in_future(self, alert):
        result = validate(replace(alert, sent=NOW + timedelta(minutes=6)), now=NOW)
        assert result.codes() == ['CAP005']
        assert result.warnings[0].severity == FindingSeverity.WARNING

    def test_sent_slightly_ahead_tolerated(self, alert):
        assert validate(replace(alert, sent=NOW + timedelta(minutes=4)), now=NOW).findings == []

    @pytest.mark.parametrize('msg_type', [CAPMsgType.UPDATE, CAPMsgType.CANCEL])
    def test_follow_up_needs_reference(self, alert, msg_type):
        result = validate(replace(alert, msg_type=msg_type), now=NOW)
        assert result.codes() == ['CAP006']

        referenced = replace(alert, msg_type=msg_type, references=(alert.reference(),))
        assert validate(referenced, now=NOW).is_valid

    def test_restricted_needs_restriction(self, alert):
        result = validate(replace(alert, scope=CAPScope.RESTRICTED), now=NOW)
        assert result.codes() == ['CAP007']
        assert validate(replace(alert, scope=CAPScope.RESTRICTED, restriction='EOC only'), now=NOW).is_valid

    def test_private_needs_addresses(self, alert):
        result = validate(replace(alert, scope=CAPScope.PRIVATE), now=NOW)
        assert result.codes() == ['CAP008']

    def test_ipaws_code_required(self, alert):
        result = validate(replace(alert, codes=()), now=NOW)
        assert result.codes() == ['IPAWS001']
        assert IPAWS_CODE in result.errors[0].message

    def test_info_required(self, alert):
        assert validate(replace(alert, info=()), now=NOW).codes() == ['CAP009']


class TestInfoRules:
    """Info-level rules."""

    def test_event_required(self, alert):
        result = validate(with_info(alert, event=' '), now=NOW)
        assert result.codes() == ['CAP010']
        assert result.errors[0].path == 'info[0].event'

    def test_headline_recommended(self, alert):
        assert validate(with_info(alert, headline=None), now=NOW).codes() == ['CAP011']

    def test_unknown_classification_on_actual(self, alert):
        changed = with_info(
            alert,
            urgency=CAPUrgency.UNKNOWN,
            severity=CAPSeverity.UNKNOWN,
            certainty=CAPCertainty.UNKNOWN
        )
        assert validate(changed, now=NOW).codes() == ['CAP012', 'CAP013', 'CAP014']

    def test_unknown_classification_on_test(self, alert):
        changed = with_info(
            replace(alert, status=CAPStatus.TEST),
            urgency=CAPUrgency.UNKNOWN,
            severity=CAPSeverity.UNKNOWN,
            certainty=CAPCertainty.UNKNOWN
        )
        assert validate(changed, now=NOW).findings == []

    def test_expires_in_past(self, alert):
        changed = with_info(alert, effective=None, expires=NOW - timedelta(minutes=1))
        assert validate(changed, now=NOW).codes() == ['CAP015']

    def test_expires_before_effective(self, alert):
        changed = with_info(alert, effective=NOW + timedelta(hours=2), expires=NOW + timedelta(hours=1))
        assert validate(changed, now=NOW).codes() == ['CAP016']

    def test_expires_equal_effective(self, alert):
        changed = with_info(alert, effective=NOW + timedelta(hours=1), expires=NOW + timedelta(hours=1))
        assert validate(changed, now=NOW).codes() == ['CAP016']

    def test_expires_beyond_24_hours(self, alert):
        changed = with_info(alert, expires=NOW + timedelta(hours=25))
        result = validate(changed, now=NOW)
        assert result.codes() == ['CAP017']
        assert result.is_valid

    def test_expires_missing(self, alert):
        assert validate(with_info(alert, expires=None), now=NOW).codes() == ['CAP018']

    def test_area_required(self, alert):
        changed = with_info(alert, areas=(), parameters=())
        assert validate(changed, now=NOW).codes() == ['CAP019']

    def test_defaults_to_current_time(self, alert):
        # NOW-based expiry is long past in real time
        assert 'CAP015' in validate(alert).codes()


class TestAreaRules:
    """Area-level rules."""

    def test_description_missing(self, alert):
        assert validate(with_area(alert, area_desc=None), now=NOW).codes() == ['CAP020']

    def test_geography_required(self, alert):
        changed = replace(alert, info=(replace(
            alert.info[0],
            parameters=(),
            areas=(CAPArea(area_desc='Nowhere'),)
        ),))
        result = validate(changed, now=NOW)
        assert result.codes() == ['CAP021']
        assert result.errors[0].path == 'info[0].areas[0]'

    def test_location_code_format(self, alert):
        result = validate(with_area(alert, location_codes=('042001', '42003', 'ABCDEF')), now=NOW)
        assert result.codes() == ['CAP022', 'CAP022']

    def test_location_code_ascii_digits_only(self, alert):
        result = validate(with_area(alert, location_codes=('042001\n', '04200١')), now=NOW)
        assert result.codes() == ['CAP022', 'CAP022']

    def test_polygon_too_short(self, alert):
        polygon = ((40.0, -75.0), (40.0, -74.0), (40.0, -75.0))
        assert validate(with_area(alert, polygons=(polygon,)), now=NOW).codes() == ['CAP023']

    def test_polygon_not_closed(self, alert):
        polygon = ((40.0, -75.0), (40.0, -74.0), (41.0, -74.0), (41.0, -75.0))
        result = validate(with_area(alert, polygons=(polygon,)), now=NOW)
        assert result.codes() == ['CAP024']
        assert result.is_valid

    def test_polygon_latitude_out_of_range(self, alert):
        good = ((40.0, -75.0), (40.0, -74.0), (41.0, -74.0), (40.0, -75.0))
        bad = ((91.0, -75.0), (95.0, -74.0), (41.0, -74.0), (91.0, -75.0))
        result = validate(with_area(alert, polygons=(good, bad)), now=NOW)
        assert result.codes() == ['CAP025']
        assert result.errors[0].path == 'info[0].areas[0].polygons[1]'
        assert '91.0' in result.errors[0].message

    def test_polygon_longitude_out_of_range(self, alert):
        polygon = ((40.0, -181.0), (40.0, -74.0), (41.0, -74.0), (40.0, -181.0))
        assert validate(with_area(alert, polygons=(polygon,)), now=NOW).codes() == ['CAP026']

    def test_ceiling_below_altitude(self, alert):
        assert validate(with_area(alert, altitude=500.0, ceiling=100.0), now=NOW).codes() == ['CAP027']
        assert validate(with_area(alert, altitude=100.0, ceiling=500.0), now=NOW).findings == []


class TestWeaRules:
    """WEA rules apply only when WEA is routed."""

    def test_short_text_limit(self, alert):
        exact = with_parameters(alert, (WEA_HANDLING, 'Broadcast'), (WEA_SHORT_TEXT, 'x' * 90))
        assert validate(exact, now=NOW).findings == []

        over = with_parameters(alert, (WEA_HANDLING, 'Broadcast'), (WEA_SHORT_TEXT, 'x' * 91))
        result = validate(over, now=NOW)
        assert result.codes() == ['WEA002']
        assert result.errors[0].path == 'info[0].parameters[CMAMtext]'

    def test_long_text_limit(self, alert):
        exact = with_parameters(alert, (WEA_HANDLING, 'Broadcast'), (WEA_LONG_TEXT, 'x' * 360))
        assert validate(exact, now=NOW).findings == []

        over = with_parameters(alert, (WEA_HANDLING, 'Broadcast'), (WEA_LONG_TEXT, 'x' * 361))
        assert validate(over, now=NOW).codes() == ['WEA003']

    def test_limits_ignored_without_routing(self, alert):
        changed = with_parameters(alert, (WEA_SHORT_TEXT, 'x' * 200))
        assert validate(changed, now=NOW).findings == []

    def test_routing_value_case_insensitive(self, alert):
        changed = with_parameters(alert, ('weahandling', 'broadcast'), (WEA_SHORT_TEXT, 'x' * 91))
        assert validate(changed, now=NOW).codes() == ['WEA002']

    def test_no_location_codes(self, alert):
        polygon = ((40.0, -75.0), (40.0, -74.0), (41.0, -74.0), (40.0, -75.0))
        changed = with_info(
            alert,
            parameters=((WEA_HANDLING, 'Broadcast'), (WEA_SHORT_TEXT, 'Take shelter')),
            areas=(CAPArea(area_desc='Box', polygons=(polygon,)),)
        )
        assert validate(changed, now=NOW).codes() == ['WEA001']

    def test_no_text(self, alert):
        changed = with_parameters(alert, (WEA_HANDLING, 'Broadcast'))
        assert validate(changed, now=NOW).codes() == ['WEA004']

    def test_long_headline(self, alert):
        changed = with_info(alert, headline='h' * 91)
        result = validate(changed, now=NOW)
        assert result.codes() == ['WEA005']
        assert result.is_valid


class TestEasRules:
    """EAS rules apply only when EAS is routed."""

    def test_location_codes_required(self, alert):
        changed = with_info(
            alert,
            parameters=((EAS_HANDLING, 'Broadcast'),),
            areas=(CAPArea(area_desc='Zone', geocodes=(('UGC', 'PAZ001'),)),)
        )
        assert validate(changed, now=NOW).codes() == ['EAS001']

    def test_same_geocodes_count(self, alert):
        changed = with_info(
            alert,
            parameters=((EAS_HANDLING, 'Broadcast'),),
            areas=(CAPArea(area_desc='County', geocodes=(('SAME', '042001'),)),)
        )
        assert validate(changed, now=NOW).findings == []

    def test_too_many_locations(self, alert):
        codes = tuple(f'042{n:03d}' for n in range(1, 33))
        changed = with_info(
            alert,
            parameters=((EAS_HANDLING, 'Broadcast'),),
            areas=(CAPArea(area_desc='State', location_codes=codes),)
        )
        result = validate(changed, now=NOW)
        assert result.codes() == ['EAS002']
        assert '32' in result.warnings[0].message

    def test_duplicate_locations_count_once(self, alert):
        codes = tuple(f'042{n:03d}' for n in range(1, 32))
        changed = with_info(
            alert,
            parameters=((EAS_HANDLING, 'Broadcast'),),
            areas=(
                CAPArea(area_desc='State', location_codes=codes),
                CAPArea(area_desc='Again', location_codes=codes[:5]),
            )
        )
        assert validate(changed, now=NOW).findings == []

    def test_unknown_event_code(self, alert):
        changed = with_info(alert, event_codes=(('SAME', 'XYZ'),))
        assert validate(changed, now=NOW).codes() == ['EAS003']


class TestNwemRules:
    """NWEM rules apply only when NWEM is routed."""

    def test_missing_vtec_and_ugc(self, alert):
        changed = with_parameters(alert, (NWEM_HANDLING, 'Broadcast'))
        assert validate(changed, now=NOW).codes() == ['NWEM001', 'NWEM002']

    def test_complete(self, alert):
        area = replace(alert.info[0].areas[0], geocodes=(('UGC', 'PAZ001'),))
        changed = with_info(
            alert,
            parameters=((NWEM_HANDLING, 'Broadcast'), ('VTEC', '/O.NEW.KCTP.TO.W.0012.250601T1800Z-250601T1900Z/')),
            areas=(area,)
        )
        assert validate(changed, now=NOW).findings == []


class TestMultipleInfo:
    """Findings from each info block carry its index."""

    def test_second_info_path(self, alert):
        second = replace(alert.info[0], event='')
        changed = replace(alert, info=(alert.info[0], second))
        result = validate(changed, now=NOW)
        assert result.codes() == ['CAP010']
        assert result.errors[0].path == 'info[1].event'

    def test_empty_alert_collects_everything(self):
        result = validate(CAPAlert(), now=NOW)
        assert result.codes() == ['CAP001', 'CAP002', 'CAP004', 'IPAWS001', 'CAP009']
