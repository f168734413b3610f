# meditravel/auth.py

from dataclasses import dataclass
from typing import Optional

from email_validator import validate_email as _validate_email, EmailNotValidError

from meditravel.db.database import get_supabase_client
from meditravel.logging_config import get_logger

logger = get_logger(__name__)

MIN_PASSWORD_LENGTH = 8


@dataclass
class AuthUser:
    id: str
    email: str
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.email


class AuthError(Exception):
    """Sign-in, sign-up or sign-out failed."""


# ----------------- VALIDATORS ------------------------

def validate_email(email: str) -> bool:
    try:
        _validate_email(email, check_deliverability=False)
        return True
    except EmailNotValidError:
        return False


def _to_auth_user(user) -> AuthUser:
    metadata = getattr(user, "user_metadata", None) or {}
    return AuthUser(
        id=str(user.id),
        email=user.email or "",
        first_name=metadata.get("first_name", ""),
        last_name=metadata.get("last_name", ""),
    )


# ----------------- SESSION ------------------------

def sign_in(email: str, password: str) -> AuthUser:
    email = (email or "").strip()
    if not validate_email(email):
        raise AuthError("Invalid email. Please try format: name@example.com")
    if not password:
        raise AuthError("Please enter your password.")

    try:
        supabase = get_supabase_client()
        response = supabase.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as e:
        logger.error(f"Sign in failed for {email}: {e}")
        raise AuthError(str(e)) from e

    if response.user is None:
        raise AuthError("Sign in failed. Please check your credentials.")

    logger.info(f"User signed in: {response.user.id}")
    return _to_auth_user(response.user)


def sign_up(email: str, password: str, first_name: str = "", last_name: str = "") -> Optional[AuthUser]:
    """
    Register a new account. Returns None when the project requires
    email confirmation before the user can sign in.
    """
    email = (email or "").strip()
    if not validate_email(email):
        raise AuthError("Invalid email. Please try format: name@example.com")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")

    try:
        supabase = get_supabase_client()
        response = supabase.auth.sign_up(
            {
                "email": email,
                "password": password,
                "options": {"data": {"first_name": first_name, "last_name": last_name}},
            }
        )
    except Exception as e:
        logger.error(f"Sign up failed for {email}: {e}")
        raise AuthError(str(e)) from e

    if response.user is None or response.session is None:
        logger.info(f"Sign up pending email confirmation: {email}")
        return None
    return _to_auth_user(response.user)


def sign_out() -> None:
    try:
        supabase = get_supabase_client()
        supabase.auth.sign_out()
    except Exception as e:
        logger.error(f"Sign out failed: {e}")
        raise AuthError(str(e)) from e


def reset_password(email: str, redirect_to: Optional[str] = None) -> None:
    """
    Send the password reset email. The link lands on `redirect_to`, where
    recover_session() turns it into a signed-in session.
    """
    email = (email or "").strip()
    if not validate_email(email):
        raise AuthError("Invalid email. Please try format: name@example.com")
    try:
        supabase = get_supabase_client()
        if redirect_to:
            supabase.auth.reset_password_for_email(email, {"redirect_to": redirect_to})
        else:
            supabase.auth.reset_password_for_email(email)
    except Exception as e:
        logger.error(f"Password reset failed for {email}: {e}")
        raise AuthError(str(e)) from e


def recover_session(query_params) -> Optional[AuthUser]:
    """
    Sign in from a password-recovery link. The recovery email template links
    back to the app with `?token_hash=...&type=recovery`; any other query
    string returns None.
    """
    token_hash = query_params.get("token_hash")
    if not token_hash or query_params.get("type") != "recovery":
        return None

    try:
        supabase = get_supabase_client()
        response = supabase.auth.verify_otp({"token_hash": token_hash, "type": "recovery"})
    except Exception as e:
        logger.error(f"Recovery link rejected: {e}")
        raise AuthError("This reset link is invalid or has expired.") from e

    if response.user is None:
        raise AuthError("This reset link is invalid or has expired.")

    logger.info(f"Recovery session started for user {response.user.id}")
    return _to_auth_user(response.user)


def validate_new_password(password: str, confirm_password: str) -> Optional[str]:
    if password != confirm_password:
        return "Passwords do not match"
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    return None


def update_password(password: str, confirm_password: str) -> None:
    """Set a new password for the signed-in user."""
    error = validate_new_password(password, confirm_password)
    if error:
        raise AuthError(error)

    try:
        supabase = get_supabase_client()
        response = supabase.auth.update_user({"password": password})
    except Exception as e:
        logger.error(f"Password update failed: {e}")
        raise AuthError(str(e)) from e

    if response.user is None:
        raise AuthError("Failed to update password")
    logger.info(f"Password updated for user {response.user.id}")
