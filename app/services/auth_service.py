from datetime import datetime, timedelta, timezone
from typing import List, Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from app.config import settings
from app.models import User, UserRole
from app.schemas.user import UserCreate, UserUpdate
from app.services.exceptions import NotFoundError, ConflictError, ValidationError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

class AuthService:
    @staticmethod
    def hash_password(password: str) -> str:
        # Bcrypt has a 72-byte limit, truncate if needed
        password_bytes = password.encode('utf-8')
        if len(password_bytes) > 72:
            password = password_bytes[:72].decode('utf-8', errors='ignore')
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a hash"""
        password_bytes = plain_password.encode('utf-8')
        if len(password_bytes) > 72:
            plain_password = password_bytes[:72].decode('utf-8', errors='ignore')
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def _encode(data: dict, expire: datetime, token_type: str) -> str:
        to_encode = data.copy()
        to_encode.update({"exp": expire, "type": token_type})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token"""
        expires_delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        return AuthService._encode(data, datetime.now(timezone.utc) + expires_delta, "access")

    @staticmethod
    def create_refresh_token(data: dict) -> str:
        """Create JWT refresh token"""
        expire = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        return AuthService._encode(data, expire, "refresh")

    @staticmethod
    def decode_token(token: str) -> Optional[dict]:
        """Decode and verify JWT token"""
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            return None

    @staticmethod
    async def authenticate_user(db: AsyncSession, username: str, password: str) -> Optional[User]:
        """Authenticate user with username and password"""
        result = await db.execute(
            select(User).where(func.lower(User.username) == username.strip().lower(), User.is_active == True)
        )
        user = result.scalar_one_or_none()

        if not user or not AuthService.verify_password(password, user.password_hash):
            return None
        return user

    @staticmethod
    async def get_user_from_token(db: AsyncSession, token: str, token_type: str = "access") -> Optional[User]:
        """Get the active user a JWT token was issued for"""
        payload = AuthService.decode_token(token)
        if not payload or payload.get("type") != token_type:
            return None

        user_id = payload.get("sub")
        if not user_id or not str(user_id).isdigit():
            return None

        result = await db.execute(
            select(User).where(User.id == int(user_id), User.is_active == True)
        )
        return result.scalar_one_or_none()

class UserService:
    """Back-office staff accounts"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def list(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.username))
        return list(result.scalars().all())

    async def create(self, data: UserCreate) -> User:
        result = await self.db.execute(
            select(User).where(func.lower(User.username) == data.username.lower())
        )
        if result.scalar_one_or_none():
            raise ConflictError("Username already registered")

        if data.email:
            result = await self.db.execute(select(User).where(User.email == data.email))
            if result.scalar_one_or_none():
                raise ConflictError("Email already registered")

        user = User(
            username=data.username,
            email=data.email,
            full_name=data.full_name,
            role=data.role,
            password_hash=AuthService.hash_password(data.password),
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def update(self, user_id: int, data: UserUpdate) -> User:
        user = await self.get(user_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(user, key, value)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def change_password(self, user: User, current_password: str, new_password: str):
        if not AuthService.verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        user.password_hash = AuthService.hash_password(new_password)
        await self.db.commit()

    async def delete(self, user_id: int, acting_user: User):
        user = await self.get(user_id)
        if user.id == acting_user.id:
            raise ValidationError("You cannot delete your own account")

        if user.role == UserRole.ADMIN:
            result = await self.db.execute(
                select(func.count(User.id)).where(User.role == UserRole.ADMIN, User.is_active == True)
            )
            if result.scalar_one() <= 1:
                raise ValidationError("Cannot delete the last administrator")

        await self.db.delete(user)
        await self.db.commit()

    async def ensure_admin(self, username: str, password: str) -> Optional[User]:
        """Create the first administrator when the users table is empty"""
        result = await self.db.execute(select(func.count(User.id)))
        if result.scalar_one() > 0:
            return None

        user = User(
            username=username,
            role=UserRole.ADMIN,
            password_hash=AuthService.hash_password(password),
            full_name="Administrator",
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user
