# Overview: Service-layer operations for users; password hashing, user creation and login.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

ROLES: A user is either an admin (all outlets, outlet_id NULL) or staff
scoped to exactly one outlet. The role and outlet live on the user row and
are turned into an explicit Caller for every request.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters with upper, lower, digit and special char
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import logging
import re

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Outlet, User
from .access_policy import Caller, require_admin
from laundry.catalog import ROLE_ADMIN, ROLE_STAFF, VALID_ROLES
from laundry.time_utils import utcnow
from laundry.validation import ConflictError, NotFoundError, ValidationError, clean_text, coerce_choice, coerce_int

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

DUPLICATE_EMAIL_MESSAGE = "A user with this email already exists"
ADMIN_EXISTS_MESSAGE = "An admin account already exists"


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        logger.warning("Unverifiable password hash encountered")
        return False


def _normalize_email(email) -> str:
    email = (clean_text(email) or "").lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("A valid email is required")
    return email


def _new_user(
    email: str,
    password: str,
    full_name: str,
    role: str = ROLE_STAFF,
    outlet_id: int | None = None,
    phone: str | None = None,
) -> User:
    email = _normalize_email(email)
    full_name = clean_text(full_name)
    if not full_name:
        raise ValidationError("full_name is required")
    role = coerce_choice(role, "role", VALID_ROLES)

    if role == ROLE_ADMIN:
        outlet_id = None
    else:
        if outlet_id is None:
            raise ValidationError("Staff users must be assigned to an outlet")
        outlet_id = coerce_int(outlet_id, "outlet_id")
        if not db.session.query(Outlet).filter_by(id=outlet_id).first():
            raise NotFoundError(f"Outlet {outlet_id} not found")

    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    user = User(
        email=email,
        full_name=full_name,
        phone=clean_text(phone),
        password_hash=hash_password(password),
        role=role,
        outlet_id=outlet_id,
        is_active=True,
    )
    db.session.add(user)
    return user


def create_user(
    email: str,
    password: str,
    full_name: str,
    role: str = ROLE_STAFF,
    outlet_id: int | None = None,
    phone: str | None = None,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Staff must name an outlet; admins never carry one.

    Raises:
        ValidationError / PasswordValidationError: bad input
        NotFoundError: unknown outlet
        ConflictError: email already registered
    """
    user = _new_user(email, password, full_name, role=role, outlet_id=outlet_id, phone=phone)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
    logger.info("User %s created with role %s (outlet=%s)", user.email, user.role, user.outlet_id)
    return user


def create_user_as(caller: Caller, **fields) -> User:
    require_admin(caller, "manage users")
    return create_user(**fields)


def has_admin() -> bool:
    return db.session.query(User.id).filter_by(role=ROLE_ADMIN).first() is not None


def setup_first_admin(email: str, password: str, full_name: str) -> User:
    """
    Bootstrap the very first admin account.

    Only allowed while no admin exists; afterwards admins are created by
    other admins. The new row is flushed before the final check, so of two
    simultaneous setups the one that takes the write lock second sees the
    first admin and is rolled back.
    """
    if has_admin():
        raise ConflictError(ADMIN_EXISTS_MESSAGE)

    user = _new_user(email, password, full_name, role=ROLE_ADMIN)
    try:
        db.session.flush()
        other = db.session.query(User.id).filter(User.role == ROLE_ADMIN, User.id != user.id).first()
        if other is not None:
            raise ConflictError(ADMIN_EXISTS_MESSAGE)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
    except ConflictError:
        db.session.rollback()
        raise

    logger.info("First admin %s created", user.email)
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    email = (clean_text(email) or "").lower()
    user = db.session.query(User).filter(User.email == email, User.is_active.is_(True)).first()
    if not user:
        return None

    if verify_password(password or "", user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    logger.info("Failed login for %s", email)
    return None


def list_users(caller: Caller) -> list[User]:
    require_admin(caller, "manage users")
    return db.session.query(User).order_by(User.role.asc(), User.full_name.asc()).all()
