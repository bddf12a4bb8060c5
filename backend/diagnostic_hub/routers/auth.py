from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
import logging
import uuid

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import STAFF_ROLES, ROLE_ADMIN, AuthUser, AuthSession, Invitation, UserRole, utcnow

router = APIRouter(prefix="/auth", tags=["auth"])

logging.getLogger('passlib').setLevel(logging.ERROR)
_log = logging.getLogger("diagnostic_hub.auth")
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class User(BaseModel):
	id: str
	username: str
	email: str
	full_name: str
	parent_email: Optional[str] = None
	roles: List[str] = []

	@property
	def is_admin(self) -> bool:
		return ROLE_ADMIN in self.roles

	@property
	def is_staff(self) -> bool:
		return any(r in STAFF_ROLES for r in self.roles)


def hash_password(password: str) -> str:
	# bcrypt only considers the first 72 bytes
	password_bytes = password.encode('utf-8')[:72]
	return pwd_context.hash(password_bytes.decode('utf-8', errors='ignore'))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	password_bytes = plain_password.encode('utf-8')[:72]
	return pwd_context.verify(password_bytes.decode('utf-8', errors='ignore'), hashed_password)


def user_roles(db: Session, user_id: str) -> List[str]:
	return sorted(r.role for r in db.query(UserRole).filter(UserRole.user_id == user_id).all())


def _to_user(db: Session, row: AuthUser) -> User:
	return User(
		id=row.id,
		username=row.username,
		email=row.email,
		full_name=row.full_name,
		parent_email=row.parent_email,
		roles=user_roles(db, row.id),
	)


def authenticate_user(db: Session, username: str, password: str) -> Optional[AuthUser]:
	user_row = db.query(AuthUser).filter(AuthUser.username == username).first()
	if user_row and verify_password(password, user_row.password_hash):
		return user_row
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	return datetime.now(timezone.utc) + delta


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def open_session(db: Session, user_id: str) -> str:
	"""Persist a server-side session and return a bearer token bound to it."""
	session_id = uuid.uuid4().hex
	db.add(AuthSession(session_id=session_id, user_id=user_id))
	db.commit()
	return create_access_token({"sub": user_id, "jti": session_id})


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Incorrect username or password")
	return Token(access_token=open_session(db, user.id))


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(
		status_code=401,
		detail="Invalid authentication",
		headers={"WWW-Authenticate": "Bearer"},
	)
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		user_id: str | None = payload.get("sub")
		jti: str | None = payload.get("jti")
		if user_id is None or jti is None:
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	# The session row must still exist; deleting it revokes the token
	session = db.get(AuthSession, jti)
	if not session or session.user_id != user_id:
		raise credentials_exception
	row = db.get(AuthUser, user_id)
	if row is None:
		raise credentials_exception
	session.last_activity_at = utcnow()
	db.add(session)
	db.commit()
	return _to_user(db, row)


def require_staff(user: User = Depends(get_current_user)) -> User:
	if not user.is_staff:
		raise HTTPException(status_code=403, detail="Admin or teacher access required")
	return user


def require_admin(user: User = Depends(get_current_user)) -> User:
	if not user.is_admin:
		raise HTTPException(status_code=403, detail="Admin access required")
	return user


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user


class RegisterRequest(BaseModel):
	username: str
	password: str
	email: str
	full_name: str
	parent_email: Optional[str] = None
	invitation_token: Optional[str] = None


def _accept_invitation(db: Session, token: str, email: str) -> Invitation:
	invitation = db.query(Invitation).filter(Invitation.token == token).first()
	if (
		invitation is None
		or invitation.accepted_at is not None
		or invitation.expires_at < utcnow()
		or invitation.email != email.lower()
	):
		raise HTTPException(status_code=400, detail="Invalid or expired invitation")
	return invitation


@router.post("/register", status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	username = (req.username or "").strip()
	password = req.password or ""
	email = (req.email or "").strip()
	full_name = (req.full_name or "").strip()
	if not username or not password:
		raise HTTPException(status_code=400, detail="username and password are required")
	if not email or not full_name:
		raise HTTPException(status_code=400, detail="email and full_name are required")
	if len(username) < 3 or len(username) > 128:
		raise HTTPException(status_code=400, detail="username must be 3-128 characters")
	invitation = _accept_invitation(db, req.invitation_token, email) if req.invitation_token else None
	existing = db.query(AuthUser).filter(AuthUser.username == username).first()
	if existing:
		raise HTTPException(status_code=409, detail="username already exists")
	row = AuthUser(
		username=username,
		password_hash=hash_password(password),
		email=email,
		full_name=full_name,
		parent_email=(req.parent_email or "").strip() or None,
	)
	db.add(row)
	db.flush()
	if invitation is not None:
		db.add(UserRole(user_id=row.id, role=invitation.role))
		invitation.accepted_at = utcnow()
		db.add(invitation)
		_log.info("Invitation accepted email=%s role=%s", invitation.email, invitation.role)
	db.commit()
	return {"ok": True}
