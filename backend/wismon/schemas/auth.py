"""
Authentication request/response schemas.
"""
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from wismon.models.student import Student


class SubjectClaims(BaseModel):
    """Identity claims embedded in every token."""
    nrm: str = Field(..., description="Student registration number")
    nim: str = Field(..., description="Student identification number")
    namam: str = Field(..., description="Student display name")

    @classmethod
    def from_student(cls, student: Student) -> "SubjectClaims":
        return cls(nrm=student.nrm, nim=student.nim, namam=student.namam)


class TokenPayload(SubjectClaims):
    """Decoded and verified token payload."""
    type: Literal["access", "refresh"] = Field(..., description="Token type")
    iat: datetime = Field(..., description="Issued at time")
    exp: datetime = Field(..., description="Expiration time")
    iss: str = Field(..., description="Issuer")
    aud: str = Field(..., description="Audience")
    token_id: Optional[str] = Field(
        None, alias="tokenId", description="Random identifier, refresh tokens only"
    )

    class Config:
        populate_by_name = True


class TokenPair(BaseModel):
    """Access token plus refresh token issued together."""
    access_token: str = Field(..., description="Short-lived JWT access token")
    refresh_token: str = Field(..., description="Long-lived JWT refresh token")


class LoginRequest(BaseModel):
    """Login request body."""
    namam_nim: str = Field(
        ...,
        min_length=2,
        max_length=100,
        pattern=r"^[a-zA-Z0-9\s.'-]+$",
        description="Student name or NIM (letters, digits, spaces, dots, apostrophes, hyphens)",
    )
    nrm: str = Field(
        ...,
        min_length=5,
        max_length=20,
        pattern=r"^[A-Z0-9-]+$",
        description="Student registration number (uppercase letters, digits, hyphens)",
    )

    class Config:
        str_strip_whitespace = True


class RefreshRequest(BaseModel):
    """Refresh request body; the cookie takes precedence when present."""
    refreshToken: Optional[str] = Field(None, description="Refresh token for clients without cookies")


class LoginResult(BaseModel):
    """Outcome of a successful login."""
    tokens: TokenPair
    user: Student
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class ApiResponse(BaseModel):
    """Envelope returned by every auth endpoint."""
    success: bool = True
    message: str
    data: Optional[Any] = None
    errors: Optional[list[str]] = None
