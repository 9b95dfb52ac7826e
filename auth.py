"""
Identity gate: bearer-token verification and role lookup.

Tokens are HS256 JWTs shared with the identity provider. The `users`
collection is keyed by uid and its `role` field is the only authorization signal.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo.database import Database

from config import Settings
from errors import AuthenticationError, AuthorizationError

log = logging.getLogger("egrocery.auth")

security = HTTPBearer(auto_error=False)


class UserClaims(NamedTuple):
    uid: str
    email: Optional[str] = None


class IdentityGate:
    def __init__(self, db: Database, settings: Settings):
        self.db = db
        self.settings = settings

    def issue_token(self, uid: str, email: Optional[str] = None) -> str:
        exp = datetime.now(timezone.utc) + timedelta(days=self.settings.jwt_expiry_days)
        payload = {"uid": uid, "email": email, "exp": exp}
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def verify_identity(self, token: str) -> UserClaims:
        try:
            payload = jwt.decode(
                token, self.settings.jwt_secret, algorithms=[self.settings.jwt_algorithm]
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError as e:
            log.warning("Token verification error: %s", e)
            raise AuthenticationError("Invalid or expired token")
        uid = payload.get("uid")
        if not uid:
            raise AuthenticationError("Invalid token payload")
        return UserClaims(uid=uid, email=payload.get("email"))

    def is_admin(self, uid: str) -> bool:
        user = self.db["users"].find_one({"_id": uid}, {"role": 1})
        return bool(user) and user.get("role") == "admin"


# ----------------------- FastAPI dependencies -----------------------

def get_gate(request: Request) -> IdentityGate:
    return request.app.state.gate


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    gate: IdentityGate = Depends(get_gate),
) -> UserClaims:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("No authentication token provided")
    return gate.verify_identity(credentials.credentials)


def require_admin(
    user: UserClaims = Depends(get_current_user),
    gate: IdentityGate = Depends(get_gate),
) -> UserClaims:
    if not gate.is_admin(user.uid):
        raise AuthorizationError("Admin access required")
    return user
