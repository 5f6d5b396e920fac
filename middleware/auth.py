import logging
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from flask import request, current_app
import jwt
from jwt import PyJWKClient
from models import db, User
from utils.response import error_response

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Identity resolved from the session token, handed to each resource method."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None

    @classmethod
    def from_claims(cls, payload: dict) -> "CurrentUser":
        return cls(
            id=payload['sub'],
            name=payload.get('name'),
            email=payload.get('email'),
            image_url=payload.get('image_url') or payload.get('picture'),
        )


class AuthMiddleware:
    def __init__(self):
        self._jwks_clients = {}

    def get_signing_key(self, token: str):
        frontend_api = current_app.config.get('CLERK_FRONTEND_API')
        jwks_url = f"https://{frontend_api}/.well-known/jwks.json"

        jwks_client = self._jwks_clients.get(jwks_url)
        if jwks_client is None:
            jwks_client = PyJWKClient(jwks_url)
            self._jwks_clients[jwks_url] = jwks_client

        return jwks_client.get_signing_key_from_jwt(token).key

    def decode(self, token: str) -> dict:
        audience = current_app.config.get('CLERK_JWT_AUDIENCE')
        return jwt.decode(
            token,
            key=self.get_signing_key(token),
            algorithms=["RS256"],
            audience=audience,
            options={"verify_exp": True, "verify_aud": bool(audience), "require": ["sub"]},
            leeway=60  # Allow 60 seconds of clock skew
        )

    def clerk_required(self, f):
        """Verify the Clerk session JWT and pass the caller as `current_user`."""
        @wraps(f)
        def decorated(*args, **kwargs):
            auth_header = request.headers.get("Authorization", "")

            if not auth_header.startswith("Bearer "):
                logger.warning("Missing or malformed Authorization header")
                return error_response("Unauthorized - No Bearer token", 401)

            token = auth_header.split("Bearer ")[1]

            try:
                payload = self.decode(token)
                logger.debug("JWT validated for user: %s", payload.get("sub"))

            except jwt.ExpiredSignatureError:
                logger.warning("JWT token expired")
                return error_response("Token expired", 401)
            except jwt.InvalidTokenError as e:
                logger.warning("Invalid JWT token: %s", str(e))
                return error_response("Invalid token", 401)
            except Exception as e:
                logger.error("JWT validation error: %s", str(e))
                return error_response("Authentication failed", 500)

            current_user = CurrentUser.from_claims(payload)

            try:
                ensure_user(current_user)
            except Exception as e:
                db.session.rollback()
                logger.error("Could not register user %s: %s", current_user.id, str(e))
                return error_response("Authentication failed", 500)

            kwargs['current_user'] = current_user
            return f(*args, **kwargs)

        return decorated


def ensure_user(current_user: CurrentUser) -> User:
    """Create the local user row on first sight; the Clerk webhook keeps it current."""
    user = db.session.get(User, current_user.id)
    if user:
        return user

    user = User(
        id=current_user.id,
        name=current_user.name or "Unknown User",
        email=current_user.email,
        avatar_url=current_user.image_url,
    )
    db.session.add(user)
    db.session.commit()
    logger.info("Registered user %s on first request", current_user.id)
    return user


# Global instance
auth_middleware = AuthMiddleware()
clerk_required = auth_middleware.clerk_required
