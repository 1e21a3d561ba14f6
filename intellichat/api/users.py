"""Users API - registration, login, profile and the community gallery."""
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field

from intellichat.auth import create_access_token, get_current_user, hash_password, verify_password
from intellichat.config import Settings, get_settings
from intellichat.db import DatabaseError, Store, get_db
from intellichat.db.models import User
from intellichat.errors import InvalidCredentials, UserExists, ValidationError
from intellichat.logging import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix="/api/user", tags=["users"])


class RegisterRequest(BaseModel):
    """Registration payload."""
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    """Login payload."""
    email: str
    password: str


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    store: Store = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Create an account and return a token for it."""
    if not body.name.strip():
        raise ValidationError("Name is required")

    if await store.get_user_by_email(body.email):
        raise UserExists()

    try:
        user = await store.create_user(
            name=body.name,
            email=body.email,
            password_hash=hash_password(body.password),
            credits=settings.signup_credits,
        )
    except DatabaseError:
        # Lost a race with a concurrent registration for the same email
        if await store.get_user_by_email(body.email):
            raise UserExists()
        raise
    logger.info("user_registered", user_id=user.id)

    return {"success": True, "token": create_access_token(user.id)}


@router.post("/login")
async def login(body: LoginRequest, store: Store = Depends(get_db)):
    user = await store.get_user_by_email(body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        raise InvalidCredentials()

    return {"success": True, "token": create_access_token(user.id)}


@router.get("/data")
async def get_user_data(current_user: User = Depends(get_current_user)):
    """Get current user's profile and balance."""
    return {"success": True, "user": current_user.model_dump(by_alias=True, mode="json")}


@router.get("/published-images")
async def get_published_images(store: Store = Depends(get_db)):
    """Images users chose to publish, newest first."""
    images = await store.list_published_images()
    return {
        "success": True,
        "images": [image.model_dump(by_alias=True) for image in images],
    }
