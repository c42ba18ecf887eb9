from fastapi import APIRouter, Depends, status
from app.api.dependencies import get_auth_service, require_identity
from app.core.security import AuthenticatedIdentity
from app.schemas.auth import AuthResponse, LoginRequest, ProfileResponse, RegisterRequest
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])

# Handlers are plain functions: FastAPI runs them in its threadpool, so a
# request waiting on the database or on bcrypt only blocks itself


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Register a new user"""
    data = auth_service.register(payload.email, payload.password, payload.name)
    return AuthResponse(message="User registered successfully", data=data)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Login and get access token"""
    data = auth_service.login(payload.email, payload.password)
    return AuthResponse(message="Login successful", data=data)


@router.get("/me", response_model=ProfileResponse)
def get_current_user_info(
    identity: AuthenticatedIdentity = Depends(require_identity),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Get current user profile"""
    return ProfileResponse(data=auth_service.get_profile(identity))
