"""
Tests for the Flask API
"""

import pytest
import ssl
import sys
import os

import httpx

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from ipaws_alert.cap.serializer import encode
from ipaws_alert.settings import Settings
from ipaws_alert.web import create_app
from ipaws_alert.web import app as app_module

from conftest import build_alert, write_pkcs12


ACCEPTED_BODY = '<response><messageId>IPAWS-777</messageId></response>'


def alert_payload(**overrides):
    payload = {
        'sender': 'ops@county.example.gov',
        'status': 'Actual',
        'info': [{
            'event': 'Tornado Warning',
            'categories': ['Met'],
            'urgency': 'Immediate',
            'severity': 'Extreme',
            'certainty': 'Observed',
            'headline': 'Tornado Warning for Example County',
            'expires_in_minutes': 60,
            'event_codes': {'SAME': 'TOR'},
            'channels': {'wea': {'short_text': 'Tornado Warning in this area. Take shelter now.'}, 'eas': True},
            'areas': [{'area_desc': 'Example County, PA', 'location_codes': ['042001', '042003']}],
        }]
    }
    payload.update(overrides)
    return payload


def make_app(handler=None, **settings):
    calls = []

    def record(request):
        calls.append(request)
        return handler(request) if handler else httpx.Response(200, text=ACCEPTED_BODY)

    options = {'endpoint': 'https://gateway.test/cap', 'retry_delay': 0.01}
    options.update(settings)
    app = create_app(Settings(_env_file=None, **options), transport=httpx.MockTransport(record))
    app.config['TESTING'] = True
    return app, calls


@pytest.fixture
def app_and_calls():
    return make_app()


@pytest.fixture
def client(app_and_calls):
    app, _ = app_and_calls
    return app.test_client()


class TestCodes:
    """Tests for the code listing endpoints."""

    def test_event_codes(self, client):
        response = client.get('/api/codes/events')
        assert response.status_code == 200
        data = response.get_json()
        assert data['TOR']['name'] == 'Tornado Warning'
        assert data['TOR']['originator'] == 'WXR'

    def test_originator_codes(self, client):
        data = client.get('/api/codes/originators').get_json()
        assert data['CIV'] == 'Civil Authorities'


class TestBuild:
    """Tests for building alerts from JSON."""

    def test_build(self, client):
        response = client.post('/api/cap/build', json=alert_payload())
        assert response.status_code == 200
        data = response.get_json()

        assert data['success'] is True
        assert data['xml'].startswith('<?xml version="1.0" encoding="utf-8"?>')
        assert data['alert']['codes'] == ['IPAWSv1.0']
        assert data['alert']['info'][0]['expires'] is not None
        assert data['validation']['valid'] is True

    def test_default_sender(self):
        app, _ = make_app(default_sender='eoc@county.example.gov')
        payload = alert_payload()
        del payload['sender']
        data = app.test_client().post('/api/cap/build', json=payload).get_json()
        assert data['alert']['sender'] == 'eoc@county.example.gov'

    def test_no_data(self, client):
        response = client.post('/api/cap/build', data='', content_type='application/json')
        assert response.status_code == 400

    def test_bad_enum(self, client):
        payload = alert_payload()
        payload['info'][0]['urgency'] = 'Soon'
        response = client.post('/api/cap/build', json=payload)
        assert response.status_code == 400
        assert 'Soon' in response.get_json()['error']


class TestParse:
    """Tests for parsing CAP XML."""

    def test_raw_xml(self, client):
        xml = encode(build_alert())
        response = client.post('/api/cap/parse', data=xml, content_type='application/xml')
        assert response.status_code == 200
        data = response.get_json()
        assert data['alert']['identifier'] == 'county.example.gov-20250601180000-abcd1234'
        assert data['alert']['info'][0]['areas'][0]['location_codes'] == ['042001', '042003']

    def test_json_field(self, client):
        response = client.post('/api/cap/parse', json={'xml': encode(build_alert())})
        assert response.get_json()['alert']['status'] == 'Actual'

    def test_format_error(self, client):
        xml = encode(build_alert()).replace('<event>Tornado Warning</event>', '')
        response = client.post('/api/cap/parse', json={'xml': xml})
        assert response.status_code == 400
        data = response.get_json()
        assert data['success'] is False
        assert data['element'] == 'event'

    def test_empty(self, client):
        assert client.post('/api/cap/parse', json={}).status_code == 400


class TestValidate:
    """Tests for the validation endpoint."""

    def test_valid(self, client):
        data = client.post('/api/cap/validate', json=alert_payload()).get_json()
        assert data['valid'] is True
        assert data['errors'] == []

    def test_area_without_geography(self, client):
        payload = alert_payload()
        payload['info'][0]['channels'] = {}
        payload['info'][0]['areas'] = [{'area_desc': 'Nowhere'}]
        data = client.post('/api/cap/validate', json=payload).get_json()
        assert data['valid'] is False
        assert [e['code'] for e in data['errors']] == ['CAP021']

    def test_xml_input(self, client):
        # expiry is in the past relative to the current time
        data = client.post('/api/cap/validate', data=encode(build_alert()), content_type='text/xml').get_json()
        assert 'CAP015' in [e['code'] for e in data['errors']]


class TestSubmit:
    """Tests for gateway submission through the API."""

    def test_success(self, app_and_calls):
        app, calls = app_and_calls
        response = app.test_client().post('/api/cap/submit', json=alert_payload())

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['response']['server_message_id'] == 'IPAWS-777'
        assert data['response']['attempts'] == 1
        assert len(calls) == 1

    def test_invalid_refused(self, app_and_calls):
        app, calls = app_and_calls
        payload = alert_payload()
        payload['info'][0]['areas'] = []
        response = app.test_client().post('/api/cap/submit', json=payload)

        assert response.status_code == 422
        assert 'CAP019' in [e['code'] for e in response.get_json()['validation']['errors']]
        assert calls == []

    def test_force(self, app_and_calls):
        app, calls = app_and_calls
        payload = alert_payload(force=True)
        payload['info'][0]['areas'] = []
        response = app.test_client().post('/api/cap/submit', json=payload)

        assert response.status_code == 200
        assert response.get_json()['validation']['valid'] is False
        assert len(calls) == 1

    def test_gateway_rejection(self):
        app, _ = make_app(lambda request: httpx.Response(403, text='<error>Not authorized</error>'))
        response = app.test_client().post('/api/cap/submit', json=alert_payload())

        assert response.status_code == 502
        data = response.get_json()
        assert data['success'] is False
        assert data['response']['status'] == 'Rejected'
        assert data['response']['errors'] == ['Not authorized']

    def test_ssl_context_built_once(self, tmp_path, client_cert, monkeypatch):
        key, cert = client_cert
        path = write_pkcs12(tmp_path / 'ipaws.p12', key, cert, 'changeit')
        built = []
        real_build = app_module.build_ssl_context

        def counting_build(identity=None):
            built.append(identity)
            return real_build(identity)

        monkeypatch.setattr(app_module, 'build_ssl_context', counting_build)
        app, calls = make_app(certificate_path=path, certificate_password='changeit')
        client = app.test_client()
        client.post('/api/cap/submit', json=alert_payload())
        client.post('/api/cap/submit', json=alert_payload())

        assert len(built) == 1
        assert isinstance(app.extensions['ipaws_alert']['ssl_context'], ssl.SSLContext)
        assert len(calls) == 2

    def test_credential_error(self, tmp_path):
        app, calls = make_app(certificate_path=str(tmp_path / 'missing.p12'), certificate_password='x')
        response = app.test_client().post('/api/cap/submit', json=alert_payload())

        assert response.status_code == 503
        assert 'missing.p12' in response.get_json()['error']
        assert calls == []


class TestGatewayStatus:
    """Tests for the gateway status endpoint."""

    def test_unconfigured(self, client):
        data = client.get('/api/gateway/status').get_json()
        assert data['config']['endpoint'] == 'https://gateway.test/cap'
        assert data['config']['configured'] is False
        assert data['identity'] is None
        assert data['credential_error'] is None

    def test_credential_error_reported(self, tmp_path):
        app, _ = make_app(certificate_path=str(tmp_path / 'missing.p12'))
        data = app.test_client().get('/api/gateway/status').get_json()
        assert 'not found' in data['credential_error']
        assert 'certificate_password' not in data['config']


class TestEasHeaderPreview:
    """Tests for the EAS header preview endpoint."""

    def test_preview(self, client):
        payload = alert_payload(sent='2025-06-01T18:00:00Z', callsign='WABC')
        payload['info'][0]['expires'] = '2025-06-01T19:00:00Z'
        response = client.post('/api/cap/eas-header', json=payload)
        assert response.status_code == 200
        data = response.get_json()
        assert data['header'] == 'ZCZC-WXR-TOR-042001-042003+0100-1521800-WABC-'
        assert data['event_name'] == 'Tornado Warning'

    def test_preview_without_event_code(self, client):
        payload = alert_payload()
        del payload['info'][0]['event_codes']
        response = client.post('/api/cap/eas-header', json=payload)
        assert response.status_code == 400
