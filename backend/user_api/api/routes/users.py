from fastapi import APIRouter, Depends
from user_api.api.dependencies import CurrentUser, get_current_user, get_user_store
from user_api.api.schemas import DeleteAccountRequest, UpdateProfileRequest, envelope, serialize_user
from user_api.services.profile_service import ProfileUpdate, profile_service
from user_api.storage.user_store import UserStore

router = APIRouter(prefix="/users", tags=["users"])

# All routes here require a valid bearer token.
# /profile and /account are declared before /{user_id} so they are not shadowed.


@router.get("")
def list_users(
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
):
    """List all users ordered by id"""
    users = [serialize_user(user) for user in profile_service.list_users(store)]
    return envelope(users, count=len(users))


@router.put("/profile")
def update_profile(
    payload: UpdateProfileRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
):
    """Update any subset of name, email, age and password"""
    fields = ProfileUpdate(
        name=payload.name,
        email=payload.email,
        age=payload.age,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    user = profile_service.update_profile(store, current_user.id, fields)
    return envelope(serialize_user(user), message="Profile updated successfully")


@router.delete("/account")
def delete_account(
    payload: DeleteAccountRequest,
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
):
    """Delete the caller's account; requires the current password"""
    deleted = profile_service.delete_account(store, current_user.id, payload.password)
    return envelope(deleted, message="Account deleted successfully")


@router.get("/{user_id}")
def get_user(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
):
    """Get a user by id"""
    user = profile_service.get_user(store, user_id)
    return envelope(serialize_user(user))
