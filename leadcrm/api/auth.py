import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from leadcrm.core.database import get_db
from leadcrm.core.errors import AuthenticationError
from leadcrm.core.security import verify_password, create_access_token, get_current_user, ACCESS_TOKEN_EXPIRE_MINUTES
from leadcrm.models.user import User
from leadcrm.schemas.user import UserLogin, UserResponse, Token
from leadcrm.services.system_client_service import SystemClientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# ---------------------------------------------------------
# LOGIN
# ---------------------------------------------------------
@router.post("/login", response_model=Token)
def login(login_data: UserLogin, db: Session = Depends(get_db)):
    # 1. Check User (soft-deleted accounts cannot log in)
    user = (
        db.query(User)
        .filter(User.email == login_data.email, User.deleted_at.is_(None))
        .first()
    )
    if not user or not verify_password(login_data.password, user.password_hash):
        logger.warning(f"⚠️ Failed login for {login_data.email}")
        raise AuthenticationError("Incorrect email or password")

    if not user.is_active:
        raise AuthenticationError("User account is disabled")

    # 2. Create Token
    access_token = create_access_token(
        data={"sub": user.email, "id": user.id, "role": user.role},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )

    user.last_login = datetime.utcnow()
    db.commit()
    db.refresh(user)

    # 3. Tenant branding and vocabulary for the client app
    client_config = SystemClientService(db).client_config(user)

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": UserResponse.model_validate(user),
        "client_config": client_config,
    }


# ---------------------------------------------------------
# CURRENT USER
# ---------------------------------------------------------
@router.get("/me")
def me(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {
        "user": UserResponse.model_validate(current_user).model_dump(mode="json"),
        "client_config": SystemClientService(db).client_config(current_user),
    }
