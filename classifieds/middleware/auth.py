import logging
import os
from dataclasses import dataclass
from typing import Optional

import firebase_admin  # type: ignore
from fastapi import Depends, HTTPException, Request
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from classifieds.database.connection import get_pool

logger = logging.getLogger(__name__)

FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS", "./firebase-adminsdk.json")


def init_firebase():
    """Initialize Firebase Admin (only once)"""
    if firebase_admin._apps:
        return
    if os.path.exists(FIREBASE_CREDENTIALS):
        firebase_admin.initialize_app(credentials.Certificate(FIREBASE_CREDENTIALS))
    else:
        # Falls back to application default credentials on the host
        logger.warning(f"Firebase credentials file not found at {FIREBASE_CREDENTIALS}")
        firebase_admin.initialize_app()


def extract_firebase_user_uid(request: Request) -> str:
    """
    Verify Firebase token and return the user UID
    Raises HTTPException if token is invalid or missing
    """
    auth_header = request.headers.get("Authorization")

    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")

    token = auth_header.split("Bearer ")[1]

    try:
        decoded_token = firebase_auth.verify_id_token(token)
        return decoded_token["uid"]
    except Exception:
        # Don't expose Firebase error details to user
        raise HTTPException(status_code=401, detail="Invalid or expired token")


@dataclass(frozen=True)
class Session:
    """The signed-in user for one request"""
    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


async def fetch_user_role(user_id: str) -> str:
    async with get_pool().acquire() as conn:
        role = await conn.fetchval("SELECT role FROM users WHERE id = $1", user_id)
    return role or "user"


async def get_session(request: Request) -> Session:
    user_id = extract_firebase_user_uid(request)
    try:
        role = await fetch_user_role(user_id)
    except Exception as e:
        logger.error(f"Error loading role for {user_id}: {e}", exc_info=True)
        role = "user"
    return Session(user_id=user_id, role=role)


async def get_optional_session(request: Request) -> Optional[Session]:
    """Session when a valid token is sent, None for anonymous visitors"""
    if not request.headers.get("Authorization"):
        return None
    try:
        return await get_session(request)
    except HTTPException:
        return None


async def require_admin(session: Session = Depends(get_session)) -> Session:
    if not session.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return session
