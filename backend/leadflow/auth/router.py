from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jose import jwt, JWTError
from sqlmodel import Session
from leadflow.database import get_session
from leadflow.users.models import User
from leadflow.users.service import get_user_by_email
from leadflow.auth.schemas import Token, TokenData
from leadflow.auth import service
from leadflow.config import settings

router = APIRouter(prefix="/auth", tags=["auth"])

# Must match the login endpoint below
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")

def get_current_user(token: Annotated[str, Depends(oauth2_scheme)], session: Session = Depends(get_session)) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[service.ALGORITHM])
        email: str = payload.get("sub")
        if email is None:
            raise credentials_exception
        token_data = TokenData(email=email)
    except JWTError:
        raise credentials_exception

    user = get_user_by_email(session, token_data.email)
    if user is None:
        raise credentials_exception

    # A token issued before deactivation must stop working immediately
    reason = service.account_block_reason(user)
    if reason:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=reason,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

CurrentUser = Annotated[User, Depends(get_current_user)]

@router.post("/login", response_model=Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Session = Depends(get_session)
):
    # OAuth2 calls the field 'username'; clients send the email there.
    user = service.authenticate_user(session, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    reason = service.account_block_reason(user)
    if reason:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=reason)

    access_token = service.create_access_token(
        data={"sub": user.email, "user_id": str(user.id), "role": user.role.value},
    )
    return {"access_token": access_token, "token_type": "bearer"}
