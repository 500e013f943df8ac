"""Auth endpoints: register, login, refresh, logout."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field

from sitebot.auth import service
from sitebot.auth.dependencies import CurrentUser, get_current_user

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


# --- Request / Response schemas ---

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class RefreshRequest(BaseModel):
    refresh_token: str

class TokenResponse(BaseModel):
    status: str = "success"
    data: dict


# --- Endpoints ---

@router.post("/register", status_code=201, response_model=TokenResponse, summary="Register a new user", description="Create a Supabase Auth account and return its session tokens.")
async def register(body: RegisterRequest):
    return TokenResponse(data=service.sign_up(body.email, body.password))


@router.post("/login", response_model=TokenResponse, summary="Login", description="Authenticate with email and password, returns access and refresh tokens.")
async def login(body: LoginRequest):
    return TokenResponse(data=service.sign_in(body.email, body.password))


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token", description="Exchange a refresh token for a new token pair.")
async def refresh(body: RefreshRequest):
    return TokenResponse(data=service.refresh(body.refresh_token))


@router.post("/logout", summary="Logout", description="Revoke the session's refresh tokens. Requires a valid access token.")
async def logout(user: CurrentUser = Depends(get_current_user)):
    if not user.access_token:
        raise HTTPException(status_code=400, detail="Logout requires a bearer token")
    service.sign_out(user.access_token)
    return {"status": "success", "data": {"message": "Logged out successfully"}}


@router.get("/me", summary="Current user", description="Return the authenticated identity.")
async def me(user: CurrentUser = Depends(get_current_user)):
    return {
        "status": "success",
        "data": {"id": user.id, "email": user.email, "workspace_id": user.workspace_id, "permissions": user.permissions},
    }
