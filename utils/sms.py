import requests
from flask import current_app

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"


def send_sms(to_number: str, body: str):
    """
    Sends a single SMS through Twilio. Returns (sent, error_message).
    """
    sid = current_app.config.get("TWILIO_ACCOUNT_SID")
    token = current_app.config.get("TWILIO_AUTH_TOKEN")
    from_number = current_app.config.get("TWILIO_PHONE_NUMBER")
    timeout = current_app.config.get("HTTP_TIMEOUT_SECONDS", 10)

    if not sid or not token or not from_number:
        return False, "SMS not configured"

    try:
        resp = requests.post(
            TWILIO_MESSAGES_URL.format(sid=sid),
            data={"From": from_number, "To": to_number, "Body": body},
            auth=(sid, token),
            timeout=timeout,
        )
    except requests.RequestException as exc:
        return False, str(exc)

    if not resp.ok:
        return False, f"Twilio error {resp.status_code}: {resp.text[:200]}"
    return True, None


def signup_confirmation_text(base_url: str) -> str:
    return (
        "Welcome to Journal By Text! Reply to any reminder to journal by text, "
        f"or visit {base_url} to review your entries. Reply STOP to opt out, HELP for help."
    )
