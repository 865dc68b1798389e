from typing import List
from fastapi import APIRouter, Depends, Request, status

from greenleaf.auth.schemas import (
    UserRegister, UserLogin, GoogleLogin, ProfileUpdate, PasswordChange,
    ForgotPassword, OtpPasswordReset, RoleUpdate, AddressesUpdate,
    AddressBase, AuthResponse, UserResponse,
)
from greenleaf.auth.service import IdentityService, to_user_response
from greenleaf.shared.security_config import limiter
from greenleaf.shared.utils import SuccessResponse, get_current_user, ensure_self_or_admin

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_identity_service(request: Request) -> IdentityService:
    return IdentityService(request.app.mongodb, request.app.state.settings, request.app.state.mailer)


@router.post("/register", response_model=SuccessResponse[AuthResponse], status_code=status.HTTP_201_CREATED)
async def register(user: UserRegister, service: IdentityService = Depends(get_identity_service)):
    auth = await service.register(user.name, user.email, user.password)
    return SuccessResponse(data=auth, message="User registered successfully")

@router.post("/login", response_model=SuccessResponse[AuthResponse])
@limiter.limit("5/minute")
async def login(credentials: UserLogin, request: Request, service: IdentityService = Depends(get_identity_service)):
    auth = await service.login(credentials.email, credentials.password)
    return SuccessResponse(data=auth)

@router.post("/google", response_model=SuccessResponse[AuthResponse])
@limiter.limit("10/minute")
async def google_login(body: GoogleLogin, request: Request, service: IdentityService = Depends(get_identity_service)):
    auth = await service.google_login(body.email, body.name, body.google_id, body.picture)
    return SuccessResponse(data=auth)

@router.post("/logout", response_model=SuccessResponse[dict])
async def logout(payload: dict = Depends(get_current_user), service: IdentityService = Depends(get_identity_service)):
    await service.logout(payload)
    return SuccessResponse(message="Logout successful")

@router.get("/info/{user_id}", response_model=SuccessResponse[UserResponse])
async def get_user_info(user_id: str, user: dict = Depends(get_current_user), service: IdentityService = Depends(get_identity_service)):
    ensure_self_or_admin(user, user_id)
    found = await service.get_user(user_id)
    return SuccessResponse(data=to_user_response(found))

@router.put("/update", response_model=SuccessResponse[UserResponse])
async def update_profile(update: ProfileUpdate, user: dict = Depends(get_current_user), service: IdentityService = Depends(get_identity_service)):
    updated = await service.update_profile(user["sub"], update.name)
    return SuccessResponse(data=to_user_response(updated), message="Profile updated")

@router.put("/reset-password", response_model=SuccessResponse[dict])
async def change_password(body: PasswordChange, user: dict = Depends(get_current_user), service: IdentityService = Depends(get_identity_service)):
    await service.change_password(user["sub"], body.current_password, body.new_password)
    return SuccessResponse(message="Password updated")

@router.post("/forgot-password", response_model=SuccessResponse[dict])
@limiter.limit("5/minute")
async def forgot_password(body: ForgotPassword, request: Request, service: IdentityService = Depends(get_identity_service)):
    await service.forgot_password(body.email)
    return SuccessResponse(message="OTP sent")

@router.post("/verify-otp", response_model=SuccessResponse[dict])
@limiter.limit("5/minute")
async def verify_otp(body: OtpPasswordReset, request: Request, service: IdentityService = Depends(get_identity_service)):
    await service.reset_password_with_otp(body.email, body.otp, body.new_password)
    return SuccessResponse(message="Password reset successful")

@router.put("/{user_id}/role", response_model=SuccessResponse[UserResponse])
async def update_user_role(user_id: str, body: RoleUpdate, user: dict = Depends(get_current_user), service: IdentityService = Depends(get_identity_service)):
    updated = await service.update_role(user, user_id, body.role)
    return SuccessResponse(data=to_user_response(updated), message="User role updated successfully")

@router.get("/{user_id}/addresses", response_model=SuccessResponse[List[AddressBase]])
async def get_addresses(user_id: str, user: dict = Depends(get_current_user), service: IdentityService = Depends(get_identity_service)):
    ensure_self_or_admin(user, user_id)
    addresses = await service.get_addresses(user_id)
    return SuccessResponse(data=[AddressBase(**a) for a in addresses])

@router.put("/{user_id}/addresses", response_model=SuccessResponse[List[AddressBase]])
async def update_addresses(user_id: str, body: AddressesUpdate, user: dict = Depends(get_current_user), service: IdentityService = Depends(get_identity_service)):
    ensure_self_or_admin(user, user_id)
    addresses = await service.replace_addresses(user_id, [a.model_dump() for a in body.addresses])
    return SuccessResponse(data=[AddressBase(**a) for a in addresses], message="Addresses updated")
