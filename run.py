#!/usr/bin/env python3
"""
Run the IPAWS alert API development server.
"""

import sys
import os

# add project root to path
sys.path.insert(0, os.path.dirname(__file__))

from ipaws_alert.logging_setup import setup_logging
from ipaws_alert.web import create_app

if __name__ == '__main__':
    setup_logging()
    app = create_app()
    app.run(debug=True, host='127.0.0.1', port=5000)
