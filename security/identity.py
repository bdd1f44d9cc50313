from typing import Optional

from sqlalchemy.exc import IntegrityError

from models import db
from models.user import User
from security.errors import AuthProviderError
from security.password import hash_password, verify_password
from security.session import create_session, revoke_session
from security.validation import normalize_email
from utils.timezones import resolve_timezone


class LocalIdentityProvider:
    """
    Account store and session issuer. The secure-auth gateway only ever calls
    sign_up(); password sign-in goes through /auth/token so the session is
    handed straight to the client.
    """

    def sign_up(self, email: str, password: str, metadata: Optional[dict] = None) -> dict:
        metadata = metadata or {}
        email = normalize_email(email)

        if User.query.filter_by(email=email).first():
            raise AuthProviderError("User already registered")

        phone = metadata.get("phone_number")
        if phone and User.query.filter_by(phone_number=phone).first():
            raise AuthProviderError(
                "This phone number is already registered with another account"
            )

        user = User(
            email=email,
            password_hash=hash_password(password),
            phone_number=phone or None,
            timezone=resolve_timezone(metadata.get("timezone")),
        )
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise AuthProviderError("User already registered")

        # no session here: the client signs in itself
        return {"user": user.to_dict(), "session": None}

    def verify_credentials(self, email: str, password: str) -> Optional[User]:
        user = User.query.filter_by(email=normalize_email(email)).first()
        if not user or not verify_password(password, user.password_hash):
            return None
        return user

    def sign_in_with_password(self, email: str, password: str) -> dict:
        user = self.verify_credentials(email, password)
        if user is None:
            raise AuthProviderError("Invalid login credentials")
        raw_token, expires_at = create_session(user.id)
        return {
            "session": {
                "access_token": raw_token,
                "token_type": "bearer",
                "expires_at": expires_at.isoformat() + "Z",
            },
            "user": user.to_dict(),
        }

    def sign_out(self, raw_token: str) -> bool:
        return revoke_session(raw_token)
