"""
IPAWS alert Flask application
"""

import logging
import ssl

from flask import Flask
from flask_cors import CORS

from ..client import resolve_identity, build_ssl_context, CredentialError
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Settings = None, transport=None):
    """
    Build the Flask app.

    Args:
        settings: Settings to use (defaults to environment)
        transport: httpx transport for gateway submissions (tests)
    """
    settings = settings or get_settings()

    app = Flask(__name__)
    CORS(app, origins=settings.cors_origins_list)

    config = settings.gateway_config()
    identity = None
    ssl_context = None
    credential_error = None
    try:
        identity = resolve_identity(config)
        # one context for all submissions
        ssl_context = build_ssl_context(identity)
    except CredentialError as e:
        # the API stays up; submissions report the problem
        logger.error(f"Client certificate unavailable ({e.reason.value}): {e}")
        credential_error = str(e)
    except ssl.SSLError as e:
        logger.error(f"Client certificate rejected by TLS layer: {e}")
        credential_error = str(e)

    app.extensions['ipaws_alert'] = {
        'settings': settings,
        'gateway_config': config,
        'identity': identity,
        'ssl_context': ssl_context,
        'credential_error': credential_error,
        'transport': transport,
    }

    # register blueprints
    from .routes import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    return app
