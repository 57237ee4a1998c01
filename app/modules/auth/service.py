import hashlib
import logging
import time
from typing import Any, Dict

from fastapi import HTTPException
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from supabase import Client

from app.config.settings import settings
from app.database.supabase_client import first_row

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_PROVIDER = "provider"
ROLE_PATIENT = "patient"

# In-memory cache of verified Firebase tokens; avoids re-fetching Google certs for parallel requests
_AUTH_TOKEN_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_MAX_SIZE = 500


def _store_token(cache_key: str, user_data: Dict[str, Any], now: float) -> None:
    """Drop expired entries, then the oldest ones, so new tokens always fit"""
    for key in [k for k, (_, expiry) in _AUTH_TOKEN_CACHE.items() if expiry <= now]:
        del _AUTH_TOKEN_CACHE[key]
    while len(_AUTH_TOKEN_CACHE) >= _AUTH_CACHE_MAX_SIZE:
        del _AUTH_TOKEN_CACHE[next(iter(_AUTH_TOKEN_CACHE))]
    _AUTH_TOKEN_CACHE[cache_key] = (user_data, now + settings.auth_cache_ttl_sec)


def resolve_user_role(user_id: str, supabase: Client) -> str:
    """Role precedence: admin > provider > patient"""
    admin_result = supabase.table("admin_users")\
        .select("user_id")\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    if admin_result.data:
        return ROLE_ADMIN
    provider_result = supabase.table("s2_therapist_profiles")\
        .select("id")\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    if provider_result.data:
        return ROLE_PROVIDER
    return ROLE_PATIENT


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Verify a Firebase ID token and return the caller's identity. Uses short TTL cache."""
        if not settings.firebase_project_id:
            raise HTTPException(status_code=500, detail="Firebase project not configured")
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_TOKEN_CACHE:
                user_data, expiry = _AUTH_TOKEN_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_TOKEN_CACHE[cache_key]
            claims = google_id_token.verify_firebase_token(
                token,
                google_requests.Request(),
                audience=settings.firebase_project_id
            )
            if not claims:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user_data = {
                "id": claims.get("user_id") or claims.get("sub"),
                "email": claims.get("email"),
                "phone_number": claims.get("phone_number"),
                "sign_in_provider": (claims.get("firebase") or {}).get("sign_in_provider"),
            }
            if not user_data["id"]:
                raise HTTPException(status_code=401, detail="Token has no subject")
            _store_token(cache_key, user_data, now)
            return user_data
        except HTTPException:
            raise
        except (ValueError, google_auth_exceptions.GoogleAuthError) as e:
            logger.warning(f"Firebase token rejected: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired token")

    def get_user_role(self, user_id: str) -> str:
        try:
            return resolve_user_role(user_id, self.supabase)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to resolve role: {str(e)}")

    def grant_admin(self, user_id: str, granted_by: str) -> Dict[str, Any]:
        """Add a user to admin_users (idempotent)"""
        try:
            existing = first_row(self.supabase.table("admin_users")
                                 .select("*")
                                 .eq("user_id", user_id)
                                 .limit(1)
                                 .execute())
            if existing:
                return existing
            result = self.supabase.table("admin_users").insert({
                "user_id": user_id,
                "granted_by": granted_by
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to grant admin")
            logger.info(f"Admin granted to {user_id} by {granted_by}")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to grant admin: {str(e)}")


def clear_token_cache():
    _AUTH_TOKEN_CACHE.clear()
