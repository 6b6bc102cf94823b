from pydantic import BaseModel, EmailStr, Field


class User(BaseModel):
    id: str
    name: str
    email: str
    picture: str = ""


class AuthResponse(BaseModel):
    token: str
    refresh_token: str | None = None
    user: User


class VerifyResponse(BaseModel):
    user: User


class GoogleLoginRequest(BaseModel):
    credential: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str | None = None


class VerifyRequest(BaseModel):
    token: str


class UpdateProfileRequest(BaseModel):
    name: str = Field(min_length=1)
