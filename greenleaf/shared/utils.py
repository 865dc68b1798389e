from datetime import datetime, timedelta, timezone
from typing import Optional, Generic, TypeVar, Any
from fastapi import Header, Request, Depends
from motor.motor_asyncio import AsyncIOMotorClient
from passlib.context import CryptContext
from pydantic import BaseModel
from pydantic_settings import BaseSettings
from jose import JWTError, jwt
from bson import ObjectId
from bson.errors import InvalidId
import uuid

from greenleaf.shared.exceptions import (
    UnauthorizedException, ForbiddenException, ValidationException
)

# --- Configuration ---
class Settings(BaseSettings):
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "greenleaf"
    # Wrap "persist order + clear cart" in a transaction (replica set required)
    MONGO_TRANSACTIONS: bool = False
    SECRET_KEY: str = "secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    OTP_EXPIRE_MINUTES: int = 5
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_API_URL: str = "https://api.razorpay.com/v1"
    PAYMENT_CURRENCY: str = "INR"
    RESEND_API_KEY: str = ""
    MAIL_FROM: str = "Greenleaf <no-reply@greenleaf.store>"
    RATE_LIMIT_ENABLED: bool = True

    class Config:
        env_file = ".env"

settings = Settings()


def utcnow() -> datetime:
    # MongoDB hands datetimes back naive, so keep everything naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)

# --- Database ---
def get_db_client(url: str = settings.MONGO_URL) -> AsyncIOMotorClient:
    return AsyncIOMotorClient(url)

def str_to_oid(id: str) -> ObjectId:
    try:
        return ObjectId(id)
    except (InvalidId, TypeError):
        raise ValidationException("Invalid ID format")

def with_id(doc: dict) -> dict:
    """Expose the Mongo ``_id`` as a string ``id`` for response models."""
    doc["id"] = str(doc.pop("_id"))
    return doc

# --- Authentication ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    config: Settings = settings,
) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(days=config.ACCESS_TOKEN_EXPIRE_DAYS)

    if "jti" not in to_encode:
        to_encode.update({"jti": str(uuid.uuid4())})

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)

def verify_token(token: str, config: Settings = settings) -> dict:
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise UnauthorizedException("Could not validate credentials")

# --- Response Models ---
T = TypeVar("T")

class SuccessResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None

class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
    details: Optional[Any] = None

class HealthResponse(BaseModel):
    service: str
    status: str
    timestamp: datetime
    version: str
    database: Optional[str] = None

# --- Dependencies ---
async def require_auth(request: Request, authorization: Optional[str] = Header(None)) -> dict:
    if not authorization:
        raise UnauthorizedException("No token provided")
    scheme, _, param = authorization.partition(" ")
    if scheme.lower() != "bearer" or not param:
        raise UnauthorizedException("Invalid authentication credentials")
    return verify_token(param, request.app.state.settings)

async def get_current_user(request: Request, payload: dict = Depends(require_auth)) -> dict:
    if "jti" in payload:
        is_revoked = await request.app.mongodb.revoked_tokens.find_one({"jti": payload["jti"]})
        if is_revoked:
            raise UnauthorizedException("Token has been revoked")
    # picked up by the request logging middleware
    request.state.user_id = payload.get("sub")
    return payload

async def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != "admin":
        raise ForbiddenException("Access denied. You do not have admin rights.")
    return user

def ensure_self_or_admin(user: dict, user_id: str) -> None:
    if user.get("sub") != user_id and user.get("role") != "admin":
        raise ForbiddenException("Not authorized to access another user's data")
