from functools import wraps
from flask import g, jsonify

from models import db
from models.user import User
from security.session import get_session_from_request


def load_current_user():
    """Sets g.user, g.session and g.auth_via_cookie for this request."""
    g.user = None
    g.session = None
    g.auth_via_cookie = False

    sess, via_cookie = get_session_from_request()
    if sess is None:
        return

    user = db.session.get(User, sess.user_id)
    if user is None:
        # account deleted under a live session
        return

    g.user = user
    g.session = sess
    g.auth_via_cookie = via_cookie


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if g.get("user") is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
