"""
User service - registration, credential login and account management.

Passwords are hashed in a worker thread so PBKDF2 never blocks the event
loop. Every method maps store outcomes onto the error taxonomy; nothing
here knows about HTTP.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, EmailStr, Field

from marketplace.core.errors import AuthenticationError, ConflictError, NotFoundError
from marketplace.core.models import AuthProvider, User, UserRole
from marketplace.core.utils import normalize_email, utc_now
from marketplace.storage import Collections, StorageProvider

if TYPE_CHECKING:
    from marketplace.auth.passwords import PasswordHasher

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class UserCreate(BaseModel):
    """User registration data."""
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1)


class UserUpdate(BaseModel):
    """Self-service profile changes. Role changes go through the admin API."""
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=1)


class UserService:
    """Credential store operations on top of MetadataStorage."""

    def __init__(self, storage: StorageProvider, hasher: PasswordHasher):
        self.store = storage.metadata
        self.hasher = hasher

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def find_by_email(self, email: str) -> User | None:
        doc = await self.store.find_one(Collections.USERS, {"email": normalize_email(email)})
        return User.from_document(doc) if doc else None

    async def get(self, user_id: str) -> User:
        doc = await self.store.get(Collections.USERS, user_id)
        if not doc:
            raise NotFoundError("User not found")
        return User.from_document(doc)

    async def list_users(self, limit: int = 100, offset: int = 0) -> list[User]:
        docs = await self.store.query(Collections.USERS, limit=limit, offset=offset)
        return [User.from_document(d) for d in docs]

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    async def create(self, user: User) -> User:
        """
        Persist a new user.

        Raises:
            ConflictError: email or external id already taken
        """
        user.email = normalize_email(user.email)
        await self.store.insert(Collections.USERS, user.id, user.to_document())
        logger.info(f"User created with ID: {user.id} ({user.provider.value})")
        return user

    async def register(self, data: UserCreate) -> User:
        """Register a local account."""
        logger.info(f"Registration attempt for email: {data.email}")
        if await self.find_by_email(data.email):
            logger.warning(f"Registration failed: Email {data.email} already exists.")
            raise ConflictError("User already exists", field="email")

        password_hash = await asyncio.to_thread(self.hasher.hash, data.password)
        user = User(
            name=data.name,
            email=data.email,
            password_hash=password_hash,
            provider=AuthProvider.LOCAL,
            role=UserRole.USER,
        )
        try:
            return await self.create(user)
        except ConflictError as e:
            # Lost a race against a concurrent registration
            raise ConflictError("User already exists", field=e.field) from e

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check local credentials.

        Google accounts have no password and are always rejected here.

        Raises:
            AuthenticationError: unknown email, no local password, or mismatch
        """
        user = await self.find_by_email(email)
        if not user or not user.has_password:
            logger.warning(f"Login failed for user: {email}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not await asyncio.to_thread(self.hasher.verify, password, user.password_hash):
            logger.warning(f"Login failed for user: {email}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info(f"Login successful for user_id: {user.id}")
        return user

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    async def _apply(self, user_id: str, updates: dict) -> User:
        updates["updated_at"] = utc_now().isoformat()
        doc = await self.store.update(Collections.USERS, user_id, updates)
        if not doc:
            raise NotFoundError("User not found")
        return User.from_document(doc)

    async def update(self, user_id: str, data: UserUpdate) -> User:
        """
        Apply profile changes. Fields left out of `data` are untouched; a new
        password is only stored for local accounts.
        """
        user = await self.get(user_id)
        updates: dict = {}

        if data.name is not None:
            updates["name"] = data.name
        if data.email is not None:
            updates["email"] = normalize_email(data.email)
        if data.password is not None and user.provider == AuthProvider.LOCAL:
            updates["password_hash"] = await asyncio.to_thread(self.hasher.hash, data.password)

        if not updates:
            return user

        try:
            return await self._apply(user_id, updates)
        except ConflictError as e:
            raise ConflictError("Email already in use", field=e.field) from e

    async def update_role(self, user_id: str, role: UserRole) -> User:
        """Change a user's role. Tokens already issued keep the old role."""
        user = await self._apply(user_id, {"role": UserRole(role).value})
        logger.info(f"User {user_id} role set to {user.role.value}")
        return user

    async def delete(self, user_id: str) -> None:
        if not await self.store.delete(Collections.USERS, user_id):
            raise NotFoundError("User not found")
        logger.info(f"User {user_id} deleted")
