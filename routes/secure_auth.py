from flask import Blueprint, request, jsonify, current_app

from security.errors import AuthError
from security.preflight import run_preflight
from services import get_identity_provider
from utils.request_info import client_ip

secure_auth_bp = Blueprint("secure_auth", __name__, url_prefix="/functions")


@secure_auth_bp.post("/secure-auth")
def secure_auth():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(error="Invalid JSON in request body"), 400

    try:
        body = run_preflight(data, client_ip(), get_identity_provider())
    except AuthError as err:
        return jsonify(err.payload()), err.status_code
    except Exception:
        current_app.logger.exception("Secure auth error")
        return jsonify(error="Internal server error"), 500

    return jsonify(body), 200
