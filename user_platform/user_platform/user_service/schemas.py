from pydantic import BaseModel

from typing import Optional

# Request fields are all optional: missing or malformed values are reported
# by the validation codes, not by a 422 from the framework.


class UserCreate(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"username": "Potato", "email": "potato@gmail.com", "password": "s3cur3passw0rd"}
            ]
        }
    }


class UserLogin(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class ResendRequest(BaseModel):
    email: Optional[str] = None


class PasswordResetRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    username: str
    email: str
    image_url: Optional[str] = None
    verified: bool
    role: str

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    token: str
    refresh_token: str


class RefreshResponse(BaseModel):
    token: str


class StatusResponse(BaseModel):
    message: str
