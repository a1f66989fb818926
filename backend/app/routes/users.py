from fastapi import APIRouter, Depends, status

from app.dependencies.services import get_user_service
from app.models.user_profile import UserProfileCreate
from app.schemas.user_schemas import LoginRequest, UserEnvelope
from app.services.errors import ServiceError
from app.services.user_service import UserService

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"]
)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UserEnvelope)
def register_user(payload: UserProfileCreate, service: UserService = Depends(get_user_service)):
    """
    Register an account.

    Request body:
    {
        "username": "jdoe",
        "password": "correct horse battery",
        "name": "Jo Doe",
        "email": "jo@example.com"
    }
    """
    try:
        return {"user": service.create_user(payload)}
    except ServiceError as exc:
        raise exc.to_http()


@router.post("/login", response_model=UserEnvelope)
def login(payload: LoginRequest, service: UserService = Depends(get_user_service)):
    """Check credentials. The returned id is what clients send as x-user-id."""
    try:
        return {"user": service.authenticate(payload.username, payload.password)}
    except ServiceError as exc:
        raise exc.to_http()
