"""
Authentication endpoint for exchanging credentials for a bearer token.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from company_import.api.dependencies import api_error
from company_import.api.schemas.auth import AuthResponse, Token, UserLogin, UserResponse
from company_import.core.security import authenticate_user, create_access_token
from company_import.db.session import get_db

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/token", response_model=AuthResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Log in with email and password.

    Returns:
    - JWT access token for the Authorization: Bearer header
    - User information
    """
    user = authenticate_user(db, credentials.email, credentials.password)
    if user is None or not user.is_active:
        raise api_error("unauthenticated", "Incorrect email or password")

    access_token = create_access_token(data={"sub": user.email})
    return AuthResponse(
        success=True,
        token=Token(access_token=access_token),
        user=UserResponse.model_validate(user),
    )
