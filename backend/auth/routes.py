from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from api.responses import crud_success
from api.serializers import user_to_dict
from auth.models import LoginRequest, SignupRequest, VerifyRequest
from auth.utils import get_current_user
from db.database import get_db
from db.models import User
from services import auth_service
from services.email_service import EmailService, get_email_service
from services.errors import ValidationFailed, VerificationExpired

router = APIRouter(prefix="/auth", tags=["auth"])
users_router = APIRouter(prefix="/users", tags=["users"])


def _verify(db: Session, **kwargs) -> dict:
    try:
        user, token = auth_service.verify(db, **kwargs)
    except VerificationExpired:
        # the expired account is removed even though the request fails
        db.commit()
        raise
    db.commit()
    if token is None:
        return crud_success({"user": user_to_dict(user)}, "Email already verified")
    return crud_success({"user": user_to_dict(user), "token": token}, "Email verified successfully")


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(
    req: SignupRequest,
    db: Session = Depends(get_db),
    mailer: EmailService = Depends(get_email_service),
):
    user = auth_service.signup(
        db,
        mailer,
        email=req.email,
        password=req.password,
        fullname=req.fullname,
        phone=req.phone,
    )
    db.commit()
    return crud_success(
        {"user": user_to_dict(user)},
        "Signup successful. Please check your email for the verification code.",
    )


@router.post("/login")
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user, token = auth_service.login(db, email=req.email, password=req.password)
    return crud_success({"user": user_to_dict(user), "token": token}, "Login successful")


@router.post("/verify")
def verify_post(req: VerifyRequest, db: Session = Depends(get_db)):
    return _verify(db, code=req.code, token=req.token, email=req.email)


@router.get("/verify")
def verify_get(token: str | None = None, db: Session = Depends(get_db)):
    if not token:
        raise ValidationFailed("Verification token is required")
    return _verify(db, token=token)


@router.post("/cleanup-unverified")
def cleanup_unverified(db: Session = Depends(get_db)):
    deleted = auth_service.cleanup_unverified(db)
    db.commit()
    return crud_success({"deleted": deleted}, f"Deleted {deleted} unverified user(s)")


@users_router.get("/me")
def me(user: User = Depends(get_current_user)):
    return crud_success(user_to_dict(user))
