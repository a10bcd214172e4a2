"""Authentication schemas for requests and responses"""
from pydantic import BaseModel, Field


class CredentialsRequest(BaseModel):
    """Signup/login request body (validated by the account flow, not here)"""
    email: str = Field(..., max_length=320, description="User's email address")
    password: str = Field(..., max_length=100, description="User's password (min 6 characters)")


class AuthUser(BaseModel):
    """Authenticated account as seen by the session layer"""
    id: str
    email: str
    name: str
