"""Registration preconditions, login error wording and role guards.

Everything here runs before or around a call to the Identity Store and never
contacts it itself.
"""

from functools import wraps
from typing import Callable, Dict, Optional

from .errors import AuthError, RegistrationValidationError
from .models import Role, StudentData, User

# Minimum password length requirement
MIN_PASSWORD_LENGTH = 6

PASSWORDS_DO_NOT_MATCH = "Passwords do not match / كلمات المرور غير متطابقة"
PASSWORD_TOO_SHORT = (
    f"Password must be at least {MIN_PASSWORD_LENGTH} characters / "
    f"كلمة المرور يجب أن تكون {MIN_PASSWORD_LENGTH} أحرف على الأقل"
)
STUDENT_FIELDS_REQUIRED = "All student fields are required / جميع حقول الطالب مطلوبة"
NAME_AND_EMAIL_REQUIRED = "Name and email are required / الاسم والبريد الإلكتروني مطلوبان"

EMAIL_NOT_CONFIRMED_MESSAGE = (
    "Please confirm your email before logging in. / "
    "يرجى تأكيد بريدك الإلكتروني قبل تسجيل الدخول."
)
GENERIC_LOGIN_FAILURE = (
    "Login failed. Please check your credentials. / فشل تسجيل الدخول. يرجى التحقق من بياناتك."
)
REGISTRATION_SUCCESS = (
    "Registration successful! Please check your email to confirm your account. / "
    "تم التسجيل بنجاح! يرجى التحقق من بريدك الإلكتروني لتأكيد حسابك."
)


def validate_password_strength(password: str) -> bool:
    """Return True if the password meets the minimum length."""
    return len(password) >= MIN_PASSWORD_LENGTH


def validate_registration(
    name: str,
    email: str,
    password: str,
    confirm_password: str,
    role: Role,
    student_data: Optional[StudentData] = None,
) -> None:
    """Check registration input before anything is sent to the Identity Store.

    Checks run in the order the form reports them: confirmation, length,
    student fields, then name and e-mail.

    Raises:
        RegistrationValidationError: On the first failed precondition.
    """
    if password != confirm_password:
        raise RegistrationValidationError(
            RegistrationValidationError.PASSWORD_MISMATCH, PASSWORDS_DO_NOT_MATCH
        )

    if not validate_password_strength(password):
        raise RegistrationValidationError(
            RegistrationValidationError.PASSWORD_TOO_SHORT, PASSWORD_TOO_SHORT
        )

    if role == Role.STUDENT:
        if student_data is None or not all(
            value.strip()
            for value in (student_data.student_id, student_data.major, student_data.academic_year)
        ):
            raise RegistrationValidationError(
                RegistrationValidationError.STUDENT_FIELDS_REQUIRED, STUDENT_FIELDS_REQUIRED
            )

    if not name.strip() or not email.strip():
        raise RegistrationValidationError(
            RegistrationValidationError.MISSING_FIELDS, NAME_AND_EMAIL_REQUIRED
        )


def build_signup_metadata(
    name: str, role: Role, student_data: Optional[StudentData] = None
) -> Dict[str, str]:
    """Build the profile-seed metadata sent with the sign-up call.

    Student fields are included only for students.
    """
    metadata = {"name": name.strip(), "role": role.value}
    if role == Role.STUDENT and student_data is not None:
        metadata.update(
            student_id=student_data.student_id.strip(),
            major=student_data.major.strip(),
            academic_year=student_data.academic_year.strip(),
        )
    return metadata


def get_login_error_message(error: AuthError) -> str:
    """Word a login failure for display.

    Unconfirmed accounts get a dedicated hint; everything else shows the
    Identity Store's message verbatim.
    """
    if error.email_not_confirmed:
        return EMAIL_NOT_CONFIRMED_MESSAGE
    return error.message or GENERIC_LOGIN_FAILURE


def require_role(*roles: Role) -> Callable:
    """Decorator restricting a view function to users with one of ``roles``.

    The decorated function takes the resolved user as its first argument.
    Calls without a user or with another role are not executed and return
    None.

    Usage:
        @require_role(Role.TEACHER)
        def render_teacher_dashboard(user, ctx):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(user: Optional[User], *args, **kwargs):
            if user is None or user.role not in roles:
                return None
            return func(user, *args, **kwargs)

        return wrapper

    return decorator
