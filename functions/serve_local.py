#!/usr/bin/env python3
"""Local development server for SiteQuote Python functions.

This server mimics the Firebase Functions emulator endpoints.

Usage:
    cd functions
    source venv/bin/activate
    python serve_local.py

This will start a Flask server on port 5002 that handles:
- POST /sitequote-dev/us-central1/analyze_construction -> analyze_construction function
- GET  /sitequote-dev/us-central1/analyze_construction -> provider health
- POST /sitequote-dev/us-central1/get_pricing -> get_pricing function

Without GEMINI_API_KEY / OPENAI_API_KEY only the mock provider is registered.
"""

import os

# Set environment for local development
os.environ.setdefault('FUNCTIONS_EMULATOR', 'true')
os.environ.setdefault('GCLOUD_PROJECT', 'sitequote-dev')
os.environ.setdefault('VERBOSE_LOGGING', 'true')

from flask import Flask, request, jsonify
from flask_cors import CORS

# Import the main module after setting env vars
from main import analyze_construction, get_pricing

app = Flask(__name__)
CORS(app)


class MockRequest:
    """Mock Firebase request object to wrap Flask request."""

    def __init__(self, flask_request):
        self._request = flask_request
        self._json_data = None
        self.method = flask_request.method
        self.headers = dict(flask_request.headers)

    def get_json(self, force=False):
        if self._json_data is None:
            self._json_data = self._request.get_json(force=force) or {}
        return self._json_data


def wrap_firebase_function(firebase_fn):
    """Wrap a Firebase function to work with Flask."""
    def wrapper():
        mock_req = MockRequest(request)
        response = firebase_fn(mock_req)
        return response.get_data(), response.status_code, dict(response.headers)
    return wrapper


@app.route('/sitequote-dev/us-central1/analyze_construction', methods=['GET', 'POST', 'OPTIONS'])
def handle_analyze_construction():
    return wrap_firebase_function(analyze_construction)()


@app.route('/sitequote-dev/us-central1/get_pricing', methods=['POST', 'OPTIONS'])
def handle_get_pricing():
    return wrap_firebase_function(get_pricing)()


# Health check
@app.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok', 'service': 'sitequote-python-functions'})


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5002))
    print(f"""
╔════════════════════════════════════════════════════════════════╗
║  SiteQuote Python Functions - Local Development Server         ║
╠════════════════════════════════════════════════════════════════╣
║                                                                ║
║  Server running on: http://127.0.0.1:{port}                     ║
║                                                                ║
║  Endpoints:                                                    ║
║  • POST /sitequote-dev/us-central1/analyze_construction        ║
║  • GET  /sitequote-dev/us-central1/analyze_construction        ║
║  • POST /sitequote-dev/us-central1/get_pricing                 ║
║                                                                ║
╚════════════════════════════════════════════════════════════════╝
""")
    app.run(host='127.0.0.1', port=port, debug=True, threaded=True)
