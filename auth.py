import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol, Tuple

from fastapi import Depends, Header
from jose import JWTError, jwt
from passlib.context import CryptContext

from errors import Forbidden, InvalidCredentials, Unauthorized
from schemas import Identity
from settings import get_settings

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"

pwd_context = CryptContext(schemes=["bcrypt", "pbkdf2_sha256"], deprecated="auto")


class CredentialStore(Protocol):
    def verify(self, email: str, password: str) -> Optional[Identity]:
        ...


class EnvCredentialStore:
    """The single admin identity configured through the environment."""

    def __init__(self, email: str, password: str = "", password_hash: Optional[str] = None):
        self.email = email
        self.password = password
        self.password_hash = password_hash

    def _password_matches(self, password: str) -> bool:
        if self.password_hash:
            return pwd_context.verify(password, self.password_hash)
        return hmac.compare_digest(password.encode(), self.password.encode())

    def verify(self, email: str, password: str) -> Optional[Identity]:
        if email.lower() != self.email.lower() or not self._password_matches(password):
            return None
        return Identity(id=ADMIN_ROLE, email=email, role=ADMIN_ROLE)


class AuthGate:
    def __init__(self, secret_key: str, credentials: CredentialStore,
                 expires_delta: timedelta = timedelta(days=7), algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.credentials = credentials
        self.expires_delta = expires_delta
        self.algorithm = algorithm

    def create_access_token(self, identity: Identity, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or self.expires_delta)
        to_encode = {"sub": identity.id, "email": identity.email, "role": identity.role, "exp": expire}
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def login(self, email: str, password: str) -> Tuple[str, Identity]:
        identity = self.credentials.verify(email, password)
        if identity is None:
            logger.warning(f"Failed admin login for {email}")
            raise InvalidCredentials()
        logger.info(f"Admin login: {identity.email}")
        return self.create_access_token(identity), identity

    def verify(self, token: Optional[str]) -> Identity:
        if not token:
            raise Unauthorized()
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise Unauthorized("Not authorized, token failed")
        subject, email, role = payload.get("sub"), payload.get("email"), payload.get("role")
        if not subject or not email or not role:
            raise Unauthorized("Not authorized, token failed")
        return Identity(id=subject, email=email, role=role)

    @staticmethod
    def authorize(identity: Identity, required_role: str) -> Identity:
        if identity.role != required_role:
            raise Forbidden(f"User role {identity.role} is not authorized to access this route")
        return identity


def get_auth_gate() -> AuthGate:
    settings = get_settings().auth
    store = EnvCredentialStore(settings.admin_email, settings.admin_password, settings.admin_password_hash)
    return AuthGate(settings.secret_key, store, settings.expire, settings.algorithm)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def get_current_identity(
    authorization: Optional[str] = Header(default=None),
    gate: AuthGate = Depends(get_auth_gate),
) -> Identity:
    return gate.verify(bearer_token(authorization))


def require_role(role: str):
    def role_dep(identity: Identity = Depends(get_current_identity)) -> Identity:
        return AuthGate.authorize(identity, role)
    return role_dep
