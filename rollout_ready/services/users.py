# rollout_ready/services/users.py
import logging
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from rollout_ready.config.security import SecurityConfig
from rollout_ready.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from rollout_ready.models.project import ProjectRole
from rollout_ready.models.role import Role
from rollout_ready.models.user import SystemRole, User
from rollout_ready.schemas.user import PasswordReset, UserCreate, UserRegister, UserUpdate
from rollout_ready.utils.security import generate_random_password, hash_password, verify_password

logger = logging.getLogger(__name__)

# Only an administrator may change these on any account
ADMIN_ONLY_FIELDS = {"username", "system_role", "job_role_id", "is_active"}


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def list_users(self, job_role_id: Optional[int] = None) -> List[User]:
        query = self.db.query(User).options(
            joinedload(User.job_role),
            selectinload(User.project_roles),
        )
        if job_role_id is not None:
            query = query.filter(User.job_role_id == job_role_id)
        return query.order_by(User.system_role, User.first_name, User.username).all()

    def get_user(self, user_id: int) -> User:
        user = (
            self.db.query(User)
            .options(
                joinedload(User.job_role),
                selectinload(User.project_roles).joinedload(ProjectRole.project),
                selectinload(User.project_roles).joinedload(ProjectRole.role),
            )
            .filter(User.id == user_id)
            .first()
        )
        if not user:
            raise NotFoundError("User not found")
        return user

    def _ensure_unique(self, username: Optional[str], email: Optional[str], exclude_id: int = None) -> None:
        conditions = []
        if username:
            conditions.append(User.username == username)
        if email:
            conditions.append(User.email == email)
        if not conditions:
            return

        query = self.db.query(User).filter(or_(*conditions))
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError("User with this username or email already exists")

    def _check_job_role(self, job_role_id: Optional[int]) -> None:
        if job_role_id is not None and not self.db.query(Role.id).filter(Role.id == job_role_id).first():
            raise ValidationError("Selected job role does not exist")

    @staticmethod
    def _check_password(password: Optional[str], min_length: int) -> None:
        if not password or len(password) < min_length:
            raise ValidationError(f"Password must be at least {min_length} characters long")

    def _save(self, user: User) -> User:
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("User with this username or email already exists")
        return self.get_user(user.id)

    def register(self, payload: UserRegister) -> User:
        """Self-service sign-up; always creates a plain USER."""
        self._check_password(payload.password, SecurityConfig.PASSWORDS['register_min_length'])
        username = payload.username.lower()
        email = str(payload.email).strip().lower()
        self._ensure_unique(username, email)

        user = self._save(User(
            username=username,
            email=email,
            hashed_password=hash_password(payload.password),
            first_name=payload.first_name,
            last_name=payload.last_name,
            system_role=SystemRole.USER,
        ))
        logger.info(f"User registered: {user.username}")
        return user

    def authenticate(self, login: str, password: str) -> User:
        """Match on username or email; inactive accounts cannot log in."""
        login = (login or "").strip().lower()
        user = self.db.query(User).filter(
            or_(User.username == login, User.email == login)
        ).first()

        if not user or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login attempt for '{login}'")
            raise UnauthorizedError("Invalid credentials")
        if not user.is_active:
            raise UnauthorizedError("Account is deactivated")
        return user

    def create_user(self, payload: UserCreate) -> User:
        self._check_password(payload.password, SecurityConfig.PASSWORDS['min_length'])
        email = str(payload.email).strip().lower()
        self._ensure_unique(payload.username, email)
        self._check_job_role(payload.job_role_id)

        user = self._save(User(
            username=payload.username,
            email=email,
            hashed_password=hash_password(payload.password),
            first_name=payload.first_name,
            last_name=payload.last_name,
            system_role=payload.system_role,
            job_role_id=payload.job_role_id,
        ))
        logger.info(f"User created: {user.username} ({user.system_role.value})")
        return user

    def update_user(self, user_id: int, payload: UserUpdate, principal: User) -> User:
        """
        Partial update of a user record

        Non-administrators may only touch their own profile fields; the
        caller has already checked that ``principal`` may edit this user.
        """
        user = self.get_user(user_id)
        changes = payload.model_dump(exclude_unset=True)

        restricted = ADMIN_ONLY_FIELDS.intersection(changes)
        if restricted and principal.system_role != SystemRole.ADMIN:
            raise ForbiddenError(f"Only administrators can change {', '.join(sorted(restricted))}")

        if "email" in changes and changes["email"] is not None:
            changes["email"] = str(changes["email"]).strip().lower()
        self._ensure_unique(changes.get("username"), changes.get("email"), exclude_id=user_id)

        if "job_role_id" in changes:
            self._check_job_role(changes["job_role_id"])

        password = changes.pop("password", None)
        if password is not None:
            self._check_password(password, SecurityConfig.PASSWORDS['min_length'])
            user.hashed_password = hash_password(password)

        for field in ("username", "email", "system_role", "is_active"):
            if field in changes and changes[field] is None:
                changes.pop(field)

        for field, value in changes.items():
            setattr(user, field, value)

        user = self._save(user)
        logger.info(f"User {user_id} updated by {principal.username}: {sorted(changes)}")
        return user

    def deactivate_user(self, user_id: int) -> User:
        user = self.get_user(user_id)
        user.is_active = False
        user = self._save(user)
        logger.info(f"User {user.username} deactivated")
        return user

    def reset_password(self, user_id: int, payload: PasswordReset, principal: User) -> Tuple[User, Optional[str]]:
        """
        Set a new password, or generate one when ``generate_random`` is set

        Returns:
            The user and the generated password (None when one was supplied)
        """
        user = self.get_user(user_id)

        temporary = None
        if payload.generate_random:
            temporary = generate_random_password()
            new_password = temporary
        else:
            new_password = payload.new_password
            self._check_password(new_password, SecurityConfig.PASSWORDS['min_length'])

        user.hashed_password = hash_password(new_password)
        self.db.commit()
        logger.info(f"Password reset for user {user.username} by {principal.username}")
        return user, temporary
