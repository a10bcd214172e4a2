"""Signup, login and profile flows"""
import asyncio
import logging
import uuid

from ..errors import AuthError, RateLimitExceeded
from ..schemas.auth import AuthUser
from ..schemas.itinerary import UserProfile
from ..validators.input_validator import validate_credentials
from . import database
from .auth import hash_password, verify_password
from .rate_limiter import AUTH_PURPOSE, GovernanceContext

logger = logging.getLogger(__name__)


def _gate(governance: GovernanceContext) -> None:
    if not governance.check(AUTH_PURPOSE):
        reset_time = governance.time_to_reset(AUTH_PURPOSE)
        raise RateLimitExceeded(
            AUTH_PURPOSE,
            reset_time,
            f"Too many attempts. Please try again in {reset_time} seconds."
        )


def _session_user(email: str) -> AuthUser:
    return AuthUser(id=f"usr_{uuid.uuid4().hex[:12]}", email=email, name=email.split("@")[0])


async def register_account(governance: GovernanceContext, email: str, password: str) -> AuthUser:
    """
    Create an account and its default profile

    Raises:
        RateLimitExceeded: `auth` quota exhausted
        ValidationError: Email or password unacceptable
        AuthError: Account already exists
    """
    _gate(governance)
    safe_email = validate_credentials(email, password)

    # PBKDF2 is CPU-bound, keep it off the event loop
    password_hash, salt = await asyncio.to_thread(hash_password, password)
    await database.create_auth_user(safe_email, password_hash, salt)
    await database.insert_profile_if_absent(safe_email, UserProfile.default_for(safe_email))

    logger.info(f"✓ Account created for {safe_email}")
    return _session_user(safe_email)


async def authenticate(governance: GovernanceContext, email: str, password: str) -> AuthUser:
    """
    Verify credentials

    Raises:
        RateLimitExceeded: `auth` quota exhausted
        ValidationError: Email or password unacceptable
        AuthError: Unknown account or wrong password
    """
    _gate(governance)
    safe_email = validate_credentials(email, password)

    record = await database.get_auth_user(safe_email)
    if not record:
        raise AuthError("User not found. Please sign up.")

    if not await asyncio.to_thread(verify_password, password, record["password_hash"], record["salt"]):
        logger.warning(f"Failed login for {safe_email}")
        raise AuthError("Invalid password.")

    return _session_user(safe_email)


async def load_profile(email: str) -> UserProfile:
    """Stored profile, or the default one when none is stored"""
    profile = await database.get_profile(email)
    return profile if profile is not None else UserProfile.default_for(email)
