"""Supabase database utility functions"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from supabase import create_client, Client

from ..config import settings
from ..errors import AuthError
from ..schemas.itinerary import Itinerary, UserProfile

logger = logging.getLogger(__name__)

# Tables:
#   auth_users  (email PK, password_hash, salt, created_at)
#   profiles    (email PK, data jsonb)
#   itineraries (id PK, email, data jsonb, created_at)
# The store enforces no schema on `data`; blobs are validated here.


class SupabaseClient:
    """Singleton Supabase client wrapper"""
    _instance: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Get or create Supabase client instance"""
        if cls._instance is None:
            cls._instance = create_client(
                supabase_url=settings.supabase_url,
                supabase_key=settings.supabase_key
            )
        return cls._instance


# Credential operations
async def create_auth_user(email: str, password_hash: str, salt: str) -> Dict[str, Any]:
    """
    Create a credential record

    Args:
        email: Account email (primary key)
        password_hash: Hex PBKDF2 digest
        salt: Hex salt

    Returns:
        Created record

    Raises:
        AuthError: If the account already exists
    """
    client = SupabaseClient.get_client()

    existing = client.table('auth_users').select('email').eq('email', email).execute()
    if existing.data:
        raise AuthError("Account already exists. Please log in.", duplicate=True)

    result = client.table('auth_users').insert({
        'email': email,
        'password_hash': password_hash,
        'salt': salt
    }).execute()

    if not result.data:
        raise Exception("Failed to create account")

    return result.data[0]


async def get_auth_user(email: str) -> Optional[Dict[str, Any]]:
    """
    Get the credential record for an email

    Returns:
        Record with email, password_hash and salt, or None
    """
    client = SupabaseClient.get_client()
    result = client.table('auth_users').select('email, password_hash, salt').eq('email', email).execute()

    if result.data:
        return result.data[0]
    return None


# Profile operations
async def get_profile(email: str) -> Optional[UserProfile]:
    """
    Get the stored profile for an email

    Returns:
        UserProfile if stored and valid, None otherwise
    """
    client = SupabaseClient.get_client()
    result = client.table('profiles').select('data').eq('email', email).execute()

    if not result.data:
        return None
    try:
        return UserProfile.model_validate(result.data[0]['data'])
    except PydanticValidationError as e:
        logger.error(f"Stored profile for {email} is malformed: {e.error_count()} errors")
        return None


async def upsert_profile(email: str, profile: UserProfile) -> UserProfile:
    """Insert or replace the profile blob for an email"""
    client = SupabaseClient.get_client()
    client.table('profiles').upsert({
        'email': email,
        'data': profile.model_dump(mode='json')
    }, on_conflict='email').execute()
    return profile


async def insert_profile_if_absent(email: str, profile: UserProfile) -> None:
    """Initialize a profile without overwriting an existing one"""
    client = SupabaseClient.get_client()
    client.table('profiles').upsert({
        'email': email,
        'data': profile.model_dump(mode='json')
    }, on_conflict='email', ignore_duplicates=True).execute()


# Itinerary operations
def _load_itinerary(row: Dict[str, Any]) -> Optional[Itinerary]:
    try:
        return Itinerary.model_validate(row['data'])
    except (KeyError, PydanticValidationError) as e:
        logger.error(f"Skipping malformed stored itinerary {row.get('id')}: {e}")
        return None


async def list_itineraries(email: str, limit: int = 50) -> List[Itinerary]:
    """
    Get all itineraries for a user, newest first

    Args:
        email: Owner email
        limit: Maximum number of itineraries to return

    Returns:
        Valid itineraries (malformed blobs are skipped)
    """
    client = SupabaseClient.get_client()
    result = client.table('itineraries')\
        .select('id, data')\
        .eq('email', email)\
        .order('created_at', desc=True)\
        .limit(limit)\
        .execute()

    itineraries = [_load_itinerary(row) for row in (result.data or [])]
    return [itinerary for itinerary in itineraries if itinerary is not None]


async def get_itinerary(itinerary_id: str, email: str) -> Optional[Itinerary]:
    """
    Get a specific itinerary by ID (must belong to the user)

    Returns:
        Itinerary if found and owned by user, None otherwise
    """
    client = SupabaseClient.get_client()
    result = client.table('itineraries')\
        .select('id, data')\
        .eq('id', itinerary_id)\
        .eq('email', email)\
        .execute()

    if result.data:
        return _load_itinerary(result.data[0])
    return None


async def upsert_itinerary(email: str, itinerary: Itinerary) -> Itinerary:
    """
    Create or replace an itinerary blob (last writer wins)

    Args:
        email: Owner email
        itinerary: Itinerary to store

    Returns:
        The stored itinerary
    """
    client = SupabaseClient.get_client()
    client.table('itineraries').upsert({
        'id': itinerary.id,
        'email': email,
        'data': itinerary.model_dump(mode='json')
    }, on_conflict='id').execute()
    return itinerary


async def delete_itinerary(itinerary_id: str, email: str) -> bool:
    """
    Delete an itinerary (must belong to the user)

    Returns:
        True if deleted, False if not found or not owned
    """
    client = SupabaseClient.get_client()

    if await get_itinerary(itinerary_id, email) is None:
        return False

    client.table('itineraries')\
        .delete()\
        .eq('id', itinerary_id)\
        .eq('email', email)\
        .execute()

    return True
