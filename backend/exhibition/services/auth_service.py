# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every invoice must be attributable to the user who created it, and
every owner action to an owner. Uses bcrypt for secure password hashing and
validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- The first account is always the owner; afterwards only an owner can
  create accounts, and only employee accounts
"""

import bcrypt
import re

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..roles import Role
from exhibition.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
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
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise (including for
    malformed hashes). bcrypt.checkpw() is timing-safe.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError):
        return False


def _create_user(
    role: Role,
    username: str,
    email: str,
    password: str,
    full_name: str | None = None,
    phone_number: str | None = None,
) -> User:
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email:
        raise ValidationError("username and email are required")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    # Hash password with bcrypt (validates strength automatically)
    password_hash = hash_password(password)

    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        role=role.value,
        full_name=full_name,
        phone_number=phone_number,
        is_active=True,
        created_at=utcnow(),
    )
    db.session.add(user)
    db.session.commit()
    return user


def create_owner(
    username: str,
    email: str,
    password: str,
    full_name: str | None = None,
    phone_number: str | None = None,
) -> User:
    """
    Bootstrap the owner account.

    Only allowed while no user exists at all; afterwards accounts are created
    by the owner through register_employee().
    """
    if db.session.query(User.id).first() is not None:
        raise ValidationError("An owner account already exists")
    return _create_user(Role.OWNER, username, email, password, full_name or "Owner", phone_number)


def register_employee(
    username: str,
    email: str,
    password: str,
    full_name: str | None = None,
    phone_number: str | None = None,
) -> User:
    return _create_user(Role.EMPLOYEE, username, email, password, full_name, phone_number)


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username (or email) and password.

    Returns User if credentials valid, None otherwise.
    Inactive users never authenticate.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == username, User.email == (username or "").strip().lower()),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def change_password(user_id: int, current_password: str, new_password: str) -> User:
    """
    Replace a user's password after re-checking the current one.

    Raises PermissionError when current_password is wrong. The new password
    goes through the same strength rules as at registration.
    """
    user = db.session.query(User).filter_by(id=user_id, is_active=True).first()
    if not user:
        raise NotFoundError("User not found")

    if not verify_password(current_password or "", user.password_hash):
        raise PermissionError("Invalid password")

    if new_password == current_password:
        raise PasswordValidationError("New password must differ from the current password")

    user.password_hash = hash_password(new_password)
    db.session.commit()
    return user


def update_device_token(user_id: int, device_token: str | None) -> User:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise NotFoundError("User not found")
    user.device_token = (device_token or "").strip() or None
    db.session.commit()
    return user


def list_employees() -> list[User]:
    return (
        db.session.query(User)
        .filter(User.role == Role.EMPLOYEE.value, User.is_active.is_(True))
        .order_by(User.username.asc())
        .all()
    )


def get_employee(employee_id: int) -> User:
    employee = (
        db.session.query(User)
        .filter_by(id=employee_id, role=Role.EMPLOYEE.value, is_active=True)
        .first()
    )
    if not employee:
        raise NotFoundError("Employee not found")
    return employee


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()
