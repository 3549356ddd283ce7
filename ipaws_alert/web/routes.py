"""
Flask routes for the IPAWS alert API
"""

import asyncio
import logging

from flask import Blueprint, current_app, request, jsonify

from ..cap import (
    CAPAlert, alert_from_dict, decode, encode, validate, CAPFormatError
)
from ..client import GatewayClient
from ..eas import EAS_EVENT_CODES, ORIGINATOR_CODES, EasHeader

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__)


def _state():
    return current_app.extensions['ipaws_alert']


def _error(message: str, status: int = 400):
    return jsonify({
        'success': False,
        'error': message
    }), status


def _request_xml():
    """CAP XML from a raw xml/text body, or the 'xml' field of a JSON body."""
    if request.content_type and ('xml' in request.content_type or 'text/plain' in request.content_type):
        return request.get_data(as_text=True)
    data = request.get_json(silent=True) or {}
    return data.get('xml', '')


def _request_alert() -> CAPAlert:
    """
    Alert from the request: CAP XML (raw body or 'xml' field) or an alert
    dictionary (the 'alert' field, or the JSON body itself).

    Raises:
        ValueError: On malformed XML or alert data
    """
    xml_content = _request_xml()
    if xml_content:
        return decode(xml_content)

    data = request.get_json(silent=True)
    if not data:
        raise ValueError('No CAP XML or alert data provided')
    alert_data = dict(data.get('alert', data))
    default_sender = _state()['settings'].default_sender
    if not alert_data.get('sender') and default_sender:
        alert_data['sender'] = default_sender
    return alert_from_dict(alert_data)


@api_bp.route('/cap/build', methods=['POST'])
def build_cap():
    """
    Build a CAP alert from JSON.

    Request JSON: alert fields as in CAPAlert.to_dict(), with an 'info'
    list and optional per-info 'channels' ({'wea': {...}, 'eas': true}).

    Returns:
        CAP XML, the alert as JSON and its validation findings
    """
    data = request.get_json(silent=True)
    if not data:
        return _error('No alert data provided')

    try:
        alert = _request_alert()
        return jsonify({
            'success': True,
            'xml': encode(alert, indent=True),
            'alert': alert.to_dict(),
            'validation': validate(alert).to_dict()
        })
    except (ValueError, KeyError, TypeError) as e:
        return _error(str(e))


@api_bp.route('/cap/parse', methods=['POST'])
def parse_cap_xml():
    """
    Parse CAP XML and return structured data.

    Accepts:
        - JSON with 'xml' field containing CAP XML string
        - Plain text CAP XML (Content-Type: application/xml or text/xml)
    """
    xml_content = _request_xml()
    if not xml_content:
        return _error('No CAP XML provided')

    try:
        alert = decode(xml_content)
    except CAPFormatError as e:
        return jsonify({
            'success': False,
            'error': str(e),
            'element': e.element
        }), 400

    return jsonify({
        'success': True,
        'alert': alert.to_dict()
    })


@api_bp.route('/cap/validate', methods=['POST'])
def validate_cap():
    """
    Validate a CAP alert (XML or alert JSON).

    Returns:
        valid flag plus error and warning findings
    """
    try:
        alert = _request_alert()
    except (ValueError, KeyError, TypeError) as e:
        return _error(str(e))

    return jsonify({
        'success': True,
        **validate(alert).to_dict()
    })


async def _submit(alert: CAPAlert):
    state = _state()
    async with GatewayClient(
        state['gateway_config'],
        identity=state['identity'],
        transport=state['transport'],
        ssl_context=state['ssl_context']
    ) as client:
        return await client.submit(alert)


@api_bp.route('/cap/submit', methods=['POST'])
def submit_cap():
    """
    Submit a CAP alert to IPAWS-OPEN.

    The alert is validated first and refused when it has errors, unless
    the JSON body sets 'force': true.

    Returns:
        Gateway outcome (200 on success, 502 when the gateway did not accept it)
    """
    state = _state()
    if state['credential_error']:
        return _error(f"Client certificate unavailable: {state['credential_error']}", 503)

    try:
        alert = _request_alert()
    except (ValueError, KeyError, TypeError) as e:
        return _error(str(e))

    data = request.get_json(silent=True) or {}
    validation = validate(alert)
    if not validation.is_valid and not data.get('force'):
        return jsonify({
            'success': False,
            'error': 'Alert failed validation',
            'validation': validation.to_dict()
        }), 422

    logger.info(f"Submitting alert {alert.identifier} ({alert.status.value}) via API")
    response = asyncio.run(_submit(alert))

    return jsonify({
        'success': response.is_success,
        'response': response.to_dict(),
        'validation': validation.to_dict()
    }), 200 if response.is_success else 502


@api_bp.route('/cap/eas-header', methods=['POST'])
def eas_header_preview():
    """
    Preview the EAS header broadcast stations will derive from an alert.

    Request JSON (besides the alert): callsign, originator, event (optional overrides)
    """
    data = request.get_json(silent=True) or {}
    try:
        alert = _request_alert()
        header = EasHeader.from_info(
            alert,
            originator=data.get('originator'),
            event=data.get('event'),
            callsign=data.get('callsign', 'IPAWS')
        )
    except (ValueError, KeyError, TypeError) as e:
        return _error(str(e))

    return jsonify({
        'success': True,
        **header.to_dict()
    })


@api_bp.route('/gateway/status', methods=['GET'])
def gateway_status():
    """Gateway configuration and client certificate state."""
    state = _state()
    identity = state['identity']
    return jsonify({
        'config': state['gateway_config'].to_dict(),
        'identity': identity.to_dict() if identity else None,
        'credential_error': state['credential_error']
    })


@api_bp.route('/codes/events', methods=['GET'])
def get_event_codes():
    """Get all event codes with descriptions."""
    return jsonify(EAS_EVENT_CODES)


@api_bp.route('/codes/originators', methods=['GET'])
def get_originator_codes():
    """Get all originator codes."""
    return jsonify(ORIGINATOR_CODES)
