from fastapi import APIRouter, Depends, status
from user_api.api.dependencies import CurrentUser, get_current_user, get_user_store
from user_api.api.schemas import LoginRequest, RegisterRequest, envelope, serialize_user
from user_api.services.auth_service import auth_service
from user_api.storage.user_store import UserStore

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, store: UserStore = Depends(get_user_store)):
    """Register a new user and return it with an access token"""
    result = auth_service.register(
        store,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        age=payload.age,
    )
    return envelope(
        {"user": serialize_user(result.user), "token": result.token},
        message="User registered successfully",
    )


@router.post("/login")
def login(payload: LoginRequest, store: UserStore = Depends(get_user_store)):
    """Login with email and password"""
    result = auth_service.login(store, email=payload.email, password=payload.password)
    return envelope(
        {"user": serialize_user(result.user), "token": result.token},
        message="Login successful",
    )


@router.get("/profile")
def get_profile(
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
):
    """Get the authenticated user's profile"""
    user = auth_service.get_profile(store, current_user.id)
    return envelope(serialize_user(user))
