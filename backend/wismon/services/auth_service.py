"""
Authentication service for student login and token refresh.
"""
import logging
import re
from typing import Optional

from wismon.core.security import TokenAuthority
from wismon.database.connections import ConnectionManager
from wismon.database.databases import wis_db
from wismon.database.registry import LogicalDatabase
from wismon.errors import AuthenticationError, SubjectNotFoundError
from wismon.models.student import Student
from wismon.schemas.auth import LoginRequest, LoginResult, SubjectClaims, TokenPair

logger = logging.getLogger(__name__)

_STUDENT_COLUMNS = "nrm, nim, namam, tgdaftar, tplahir, kdagama, telpasal AS phone"

# Lookups tried in order: NIM, exact name, name with spaces removed
_LOGIN_LOOKUPS = (
    "nim = ?",
    "LOWER(namam) = LOWER(?)",
    "LOWER(REPLACE(namam, ' ', '')) = LOWER(?)",
)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: ConnectionManager, tokens: TokenAuthority):
        """Initialize with the connection manager and token authority."""
        self.db = db
        self.tokens = tokens

    async def _find_one(self, where: str, params: list) -> Optional[Student]:
        query = (
            f"SELECT {_STUDENT_COLUMNS} "
            f"FROM {wis_db.Tables.MAHASISWA} "
            f"WHERE {where}"
        )
        rows = await self.db.execute(LogicalDatabase.WIS, query, params)
        if rows:
            return Student(**rows[0])
        return None

    async def find_student(self, namam_nim: str, nrm: str) -> Optional[Student]:
        """
        Find a student by NIM or name, always paired with the NRM.

        Args:
            namam_nim: Student NIM or full name
            nrm: Student registration number

        Returns:
            Student or None if nothing matched
        """
        candidates = (namam_nim, namam_nim, re.sub(r"\s+", "", namam_nim))
        for condition, value in zip(_LOGIN_LOOKUPS, candidates):
            student = await self._find_one(f"{condition} AND nrm = ?", [value, nrm])
            if student is not None:
                return student
        return None

    async def get_student_profile(self, nrm: str) -> Optional[Student]:
        """Get student profile by NRM."""
        return await self._find_one("nrm = ?", [nrm])

    async def login(self, request: LoginRequest) -> LoginResult:
        """
        Authenticate a student and issue a token pair.

        Raises:
            AuthenticationError: If no student matches
        """
        student = await self.find_student(request.namam_nim, request.nrm)
        if student is None:
            raise AuthenticationError("Student not found or invalid credentials")

        tokens = self.tokens.generate_token_pair(SubjectClaims.from_student(student))
        logger.info("Generated new token pair for user: %s", student.nrm)

        return LoginResult(
            tokens=tokens,
            user=student,
            expires_in=self.tokens.access_expires_in,
        )

    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        """
        Rotate a refresh token into a brand new pair.

        The subject is re-resolved so a deactivated account cannot keep
        minting tokens.

        Raises:
            TokenExpiredError, TokenInvalidError: If the refresh token is rejected
            SubjectNotFoundError: If the subject no longer exists
        """
        payload = self.tokens.verify_refresh_token(refresh_token)
        logger.info("Token refresh requested for user %s (tokenId=%s)", payload.nrm, payload.token_id)

        student = await self.get_student_profile(payload.nrm)
        if student is None:
            raise SubjectNotFoundError("User not found - account may have been deactivated")

        tokens = self.tokens.generate_token_pair(SubjectClaims.from_student(student))
        logger.info("Refreshed tokens for user: %s", student.nrm)
        return tokens
