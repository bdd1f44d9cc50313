from .health import health_bp
from .auth import auth_bp
from .secure_auth import secure_auth_bp
from .onboarding import onboarding_bp
from .journal import journal_bp
