from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify, current_app

from models import db
from models.sms_consent import SmsConsent
from models.user import User
from security.rate_limit import check_rate_limit
from security.validation import format_phone_e164, is_valid_phone
from utils.request_info import client_ip, user_agent
from utils.sms import send_sms, signup_confirmation_text

onboarding_bp = Blueprint("onboarding", __name__, url_prefix="/onboarding")


@onboarding_bp.post("/sms-consent")
def record_sms_consent():
    data = request.get_json(silent=True) or {}
    user_id = data.get("user_id")
    phone = data.get("phone_number") or ""
    consent_text = data.get("consent_text")
    consent_text = consent_text.strip() if isinstance(consent_text, str) else ""

    if not isinstance(user_id, int) or not consent_text or not is_valid_phone(phone):
        return jsonify(error="user_id, phone_number and consent_text are required"), 400

    phone = format_phone_e164(phone)
    user = db.session.get(User, user_id)
    if not user or user.phone_number != phone:
        return jsonify(error="Account not found"), 404

    # only right after signup, and only once
    window = timedelta(minutes=current_app.config.get("CONSENT_WINDOW_MINUTES", 60))
    if user.created_at + window < datetime.utcnow():
        return jsonify(error="Consent window has closed"), 403
    if SmsConsent.query.filter_by(user_id=user.id).first():
        return jsonify(error="Consent already recorded"), 409

    row = SmsConsent(
        user_id=user.id,
        phone_number=phone,
        consent_text=consent_text,
        ip=client_ip(),
        user_agent=user_agent(),
    )
    db.session.add(row)
    db.session.commit()
    return jsonify(id=row.id), 201


@onboarding_bp.post("/signup-confirmation")
def signup_confirmation():
    data = request.get_json(silent=True) or {}
    phone = data.get("phoneNumber") or ""

    if not is_valid_phone(phone):
        return jsonify(error="Phone number is required"), 400
    phone = format_phone_e164(phone)

    limit = check_rate_limit(
        f"{client_ip()}:{phone}",
        "signup_confirmation",
        current_app.config.get("CONFIRMATION_MAX_ATTEMPTS", 3),
        current_app.config.get("AUTH_RATE_WINDOW_MINUTES", 15),
    )
    if not limit.allowed:
        return jsonify(error="Too many attempts. Please try again later."), 429

    if not User.query.filter_by(phone_number=phone).first():
        return jsonify(error="Account not found"), 404

    sent, error = send_sms(phone, signup_confirmation_text(current_app.config.get("APP_BASE_URL", "")))
    if not sent:
        current_app.logger.error("Signup confirmation SMS failed: %s", error)
        return jsonify(error="Could not send confirmation"), 502

    return jsonify(success=True, message="Confirmation sent"), 200
