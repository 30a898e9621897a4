from sqlalchemy.orm import Session
from sqlalchemy import select, func
from passlib.context import CryptContext
from app.errors import ConflictError, NotFoundError
from app.models.user import User
from app.schemas.pagination import Page
from app.schemas.user import UserCreate, UserUpdate

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_users(db: Session, page: int = 1, size: int = 50) -> Page:
    query = select(User).order_by(User.username)
    total = db.scalar(select(func.count()).select_from(query.subquery()))
    users = db.scalars(query.offset((page - 1) * size).limit(size)).all()
    return Page.build(users, total, page, size)


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("user_not_found", f"User {user_id} does not exist", user_id=user_id)
    return user


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.scalar(select(User).where(User.username == username))


def create_user(db: Session, data: UserCreate) -> User:
    if get_user_by_username(db, data.username):
        raise ConflictError("username_exists", f"Username {data.username} already exists")
    if db.scalar(select(User).where(User.email == data.email)):
        raise ConflictError("email_exists", f"Email {data.email} is already registered")
    user = User(
        username=data.username,
        email=data.email,
        name=data.name,
        hashed_password=hash_password(data.password),
        role=data.role.value,
        is_active=data.is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_user(db: Session, user_id: int, data: UserUpdate) -> User:
    user = get_user(db, user_id)
    update_data = data.model_dump(exclude_unset=True)
    # name is the only nullable column here
    update_data = {k: v for k, v in update_data.items() if v is not None or k == "name"}
    if "password" in update_data:
        update_data["hashed_password"] = hash_password(update_data.pop("password"))
    if "role" in update_data:
        update_data["role"] = update_data["role"].value
    for field, value in update_data.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user
