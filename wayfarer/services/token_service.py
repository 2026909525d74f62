from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from ..config import Settings, settings as default_settings
from ..exceptions import InvalidToken
from ..models import User
from ..roles import Role


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as carried by a verified token."""
    id: int
    role: Role


class TokenService:
    """Signs and verifies access tokens with the secret of the given settings."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token"""
        to_encode = data.copy()
        now = datetime.now(timezone.utc)

        if expires_delta:
            expire = now + expires_delta
        else:
            expire = now + timedelta(minutes=self.settings.jwt_expiry_minutes)

        to_encode.update({"exp": expire, "iat": now})
        encoded_jwt = jwt.encode(
            to_encode,
            self.settings.jwt_secret_key,
            algorithm=self.settings.jwt_algorithm
        )
        return encoded_jwt

    def issue(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed token embedding the user's id and role"""
        data = {"sub": str(user.id), "role": Role(user.role).value}
        return self.create_access_token(data, expires_delta)

    def verify(self, token: str) -> Principal:
        """Verify and decode a token into the caller it was issued to"""
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm]
            )
        except JWTError as e:
            raise InvalidToken(str(e))

        try:
            user_id = int(payload.get("sub"))
            role = Role(payload.get("role"))
        except (ValueError, TypeError):
            raise InvalidToken("Token carries an invalid subject or role")

        return Principal(id=user_id, role=role)
