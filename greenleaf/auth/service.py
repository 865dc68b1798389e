"""
Identity service: accounts, sessions and password recovery.

Sessions are stateless JWTs (``sub`` = user id, ``role``) valid for
``ACCESS_TOKEN_EXPIRE_DAYS``. Logging out records the token's ``jti`` in the
TTL-indexed ``revoked_tokens`` collection, which ``get_current_user`` checks.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from greenleaf.auth.models import UserDB
from greenleaf.auth.schemas import UserResponse, AuthResponse
from greenleaf.notifications import Mailer
from greenleaf.shared.exceptions import (
    DuplicateEmailException, ExternalAuthRequiredException, ForbiddenException,
    UnauthorizedException, UserNotFoundException, ValidationException,
)
from greenleaf.shared.utils import (
    Settings, create_access_token, get_password_hash, verify_password,
    str_to_oid, utcnow, with_id,
)

logger = logging.getLogger(__name__)

OTP_DIGITS = 6


def generate_otp() -> str:
    return str(secrets.randbelow(9 * 10 ** (OTP_DIGITS - 1)) + 10 ** (OTP_DIGITS - 1))


def to_user_response(user: dict) -> UserResponse:
    doc = dict(user)
    if "_id" in doc:
        with_id(doc)
    return UserResponse(**doc)


class IdentityService:
    def __init__(self, db: AsyncIOMotorDatabase, config: Settings, mailer: Mailer):
        self.db = db
        self.config = config
        self.mailer = mailer

    def issue_token(self, user: dict) -> str:
        return create_access_token(
            data={"sub": str(user["_id"]), "role": user["role"]},
            expires_delta=timedelta(days=self.config.ACCESS_TOKEN_EXPIRE_DAYS),
            config=self.config,
        )

    def _auth_response(self, user: dict) -> AuthResponse:
        return AuthResponse(token=self.issue_token(user), user=to_user_response(user))

    async def get_user(self, user_id: str) -> dict:
        user = await self.db.users.find_one({"_id": str_to_oid(user_id)})
        if not user:
            raise UserNotFoundException()
        return user

    async def register(self, name: str, email: str, password: str) -> AuthResponse:
        if await self.db.users.find_one({"email": email}):
            raise DuplicateEmailException()

        user_db = UserDB(name=name, email=email, password_hash=get_password_hash(password))
        try:
            result = await self.db.users.insert_one(user_db.model_dump(by_alias=True, exclude={"id"}))
        except DuplicateKeyError:
            # lost a race against a concurrent registration
            raise DuplicateEmailException()

        user = await self.db.users.find_one({"_id": result.inserted_id})
        logger.info(f"Registered user {result.inserted_id}")
        return self._auth_response(user)

    async def login(self, email: str, password: str) -> AuthResponse:
        user = await self.db.users.find_one({"email": email})
        if not user:
            raise UnauthorizedException("Invalid credentials")
        if not user.get("password_hash"):
            raise ExternalAuthRequiredException()
        if not verify_password(password, user["password_hash"]):
            raise UnauthorizedException("Invalid credentials")
        return self._auth_response(user)

    async def google_login(self, email: str, name: str, google_id: str, picture: Optional[str]) -> AuthResponse:
        user = await self.db.users.find_one({"google_id": google_id})
        if user:
            return self._auth_response(user)

        existing = await self.db.users.find_one({"email": email})
        if existing:
            # never attach a Google identity to a password account
            raise UnauthorizedException("Email is registered with a password; sign in with it instead")

        user_db = UserDB(name=name, email=email, google_id=google_id, picture=picture)
        result = await self.db.users.insert_one(user_db.model_dump(by_alias=True, exclude={"id"}))
        user = await self.db.users.find_one({"_id": result.inserted_id})
        logger.info(f"Created Google account for user {result.inserted_id}")
        return self._auth_response(user)

    async def logout(self, payload: dict) -> None:
        if "jti" in payload:
            await self.db.revoked_tokens.insert_one({
                "jti": payload["jti"],
                "exp": datetime.fromtimestamp(payload["exp"], timezone.utc).replace(tzinfo=None),
            })

    async def update_profile(self, user_id: str, name: Optional[str]) -> dict:
        user = await self.get_user(user_id)
        if name is not None:
            await self.db.users.update_one(
                {"_id": user["_id"]},
                {"$set": {"name": name, "updated_at": utcnow()}},
            )
        return await self.get_user(user_id)

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        user = await self.get_user(user_id)
        if not user.get("password_hash"):
            raise ExternalAuthRequiredException()
        if not verify_password(current_password, user["password_hash"]):
            raise ValidationException("Incorrect current password")
        await self._set_password(user["_id"], new_password)

    async def forgot_password(self, email: str) -> None:
        user = await self.db.users.find_one({"email": email})
        if not user:
            raise UserNotFoundException("Email not registered")

        otp = generate_otp()
        expires = utcnow() + timedelta(minutes=self.config.OTP_EXPIRE_MINUTES)
        await self.db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {"otp": otp, "otp_expires": expires}},
        )
        await self.mailer.send(
            email,
            "Password Reset OTP",
            f"Your OTP is {otp}. It expires in {self.config.OTP_EXPIRE_MINUTES} minutes.",
        )

    async def reset_password_with_otp(self, email: str, otp: str, new_password: str) -> None:
        user = await self.db.users.find_one({"email": email})
        if not user:
            raise UserNotFoundException()

        stored = user.get("otp") or ""
        expires = user.get("otp_expires")
        if not stored or not secrets.compare_digest(stored, otp) or not expires or utcnow() > expires:
            raise ValidationException("Invalid or expired OTP")

        await self._set_password(user["_id"], new_password, clear_otp=True)

    async def _set_password(self, oid, new_password: str, clear_otp: bool = False) -> None:
        update = {"password_hash": get_password_hash(new_password), "updated_at": utcnow()}
        if clear_otp:
            update.update({"otp": "", "otp_expires": None})
        await self.db.users.update_one({"_id": oid}, {"$set": update})

    async def update_role(self, acting_user: dict, user_id: str, role: str) -> dict:
        if acting_user.get("role") != "admin":
            raise ForbiddenException("You do not have permission to change roles")
        user = await self.get_user(user_id)
        await self.db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {"role": role, "updated_at": utcnow()}},
        )
        return await self.get_user(user_id)

    async def get_addresses(self, user_id: str) -> List[dict]:
        user = await self.get_user(user_id)
        return user.get("addresses", [])

    async def replace_addresses(self, user_id: str, addresses: List[dict]) -> List[dict]:
        user = await self.get_user(user_id)
        await self.db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {"addresses": addresses, "updated_at": utcnow()}},
        )
        return addresses
