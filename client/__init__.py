from .auth_client import AuthClient, AuthResult
from .transport import HttpGateway, HttpIdentityClient, HttpOnboardingClient
