from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.auth import jwt_handler, security
from dentalcare.auth.dependencies import get_current_user
from dentalcare.core import config
from dentalcare.database import get_db
from dentalcare.models.user import User
from dentalcare.routes.errors import database_unavailable
from dentalcare.routes.schemas import LoginRequest, RegisterRequest, TokenResponse, UserResponse

router = APIRouter(tags=['auth'])


@router.post('/register', response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    try:
        if db.query(User).filter(User.email == data.email).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='An account with this email already exists.')

        user = User(
            email=data.email,
            hashed_password=security.hash_password(data.password),
            role=config.PATIENT_ROLE,
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == data.email).first()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if user is None or not security.verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid email or password.')

    return TokenResponse(access_token=jwt_handler.create_access_token(subject=user.email, role=user.role))


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
