"""Streamlit views: login, registration and the three role dashboards.

Views receive the PortalContext explicitly and never reach for module-level
state. Navigation is expressed through the ``page`` query parameter.
"""

from typing import Optional

import streamlit as st

from .auth import (
    REGISTRATION_SUCCESS,
    get_login_error_message,
    require_role,
)
from .errors import AuthError, DataError, RegistrationValidationError
from .logutils import get_logger
from .models import (
    ACADEMIC_YEARS,
    MAJORS,
    Role,
    StudentData,
    User,
    academic_year_label,
    major_label,
)
from .portal import PortalContext
from .router import REGISTER_PATH, ROOT_PATH

logger = get_logger(__name__)

APP_NAME = "Lumen"


def navigate(path: str) -> None:
    """Switch to ``path`` and rerun the script."""
    if path == ROOT_PATH:
        st.query_params.clear()
    else:
        st.query_params["page"] = path.lstrip("/")
    st.rerun()


def current_path() -> str:
    return "/" + st.query_params.get("page", "")


def render_loading() -> None:
    with st.spinner(f"Loading {APP_NAME}..."):
        st.markdown(f"### {APP_NAME}")


def render_header(user: User, portal: PortalContext, subtitle: str) -> None:
    """Title row with the user's name and a logout button."""
    col1, col2 = st.columns([4, 1])
    with col1:
        st.markdown(f"## {user.role.icon} {subtitle}")
        st.caption(f"{user.name} · {user.role.label}")
    with col2:
        if st.button("Logout / تسجيل خروج", key="logout_button", use_container_width=True):
            portal.logout()
            navigate(ROOT_PATH)


# ==================== AUTH PAGES ====================


def render_login_page(portal: PortalContext) -> None:
    """Render the login form.

    A successful sign-in is picked up by the Session Controller through the
    SIGNED_IN notification; the page only reruns.
    """
    st.markdown(f"## 📘 {APP_NAME}")
    st.caption("Login / تسجيل الدخول")

    with st.form("login_form"):
        email = st.text_input("Email / البريد الإلكتروني", key="login_email")
        password = st.text_input("Password / كلمة المرور", type="password", key="login_password")
        submitted = st.form_submit_button("Login / تسجيل دخول", use_container_width=True)

    if submitted:
        if not email or not password:
            st.error("Please enter both email and password. / يرجى إدخال البريد الإلكتروني وكلمة المرور.")
        else:
            try:
                with st.spinner("Signing in..."):
                    portal.controller.login(email, password)
            except AuthError as e:
                st.error(get_login_error_message(e))
            else:
                st.rerun()

    st.markdown("Don't have an account? / ليس لديك حساب؟")
    if st.button("Register / إنشاء حساب", key="goto_register"):
        navigate(REGISTER_PATH)


def render_register_page(portal: PortalContext) -> None:
    """Render the registration form, or the confirmation notice after success."""
    if st.session_state.get("registration_done"):
        st.success(REGISTRATION_SUCCESS)
        if st.button("Back to Login / العودة لتسجيل الدخول", key="back_to_login"):
            st.session_state.registration_done = False
            navigate(ROOT_PATH)
        return

    st.markdown("## Create Account / إنشاء حساب")

    # Outside the form so the student fields appear as soon as the role changes
    role = st.selectbox(
        "Account Type / نوع الحساب",
        options=list(Role),
        format_func=lambda r: r.label,
        key="register_role",
    )

    with st.form("register_form"):
        name = st.text_input("Full Name / الاسم الكامل")
        email = st.text_input("Email / البريد الإلكتروني")

        student_data: Optional[StudentData] = None
        if role == Role.STUDENT:
            student_id = st.text_input("Student ID / الرقم الجامعي")
            major = st.selectbox(
                "Major / التخصص",
                options=[""] + list(MAJORS),
                format_func=lambda m: MAJORS.get(m, "Select Major / اختر التخصص"),
            )
            academic_year = st.selectbox(
                "Academic Year / السنة الدراسية",
                options=[""] + list(ACADEMIC_YEARS),
                format_func=lambda y: ACADEMIC_YEARS.get(y, "Select Academic Year / اختر السنة الدراسية"),
            )
            student_data = StudentData(
                student_id=student_id, major=major, academic_year=academic_year
            )

        password = st.text_input("Password / كلمة المرور", type="password")
        confirm_password = st.text_input("Confirm Password / تأكيد كلمة المرور", type="password")
        submitted = st.form_submit_button("Register / إنشاء حساب", use_container_width=True)

    if submitted:
        try:
            with st.spinner("Creating Account... / جاري إنشاء الحساب..."):
                portal.controller.register(
                    name, email, password, confirm_password, role, student_data
                )
        except RegistrationValidationError as e:
            st.error(e.message)
        except AuthError as e:
            logger.warning(f"Registration failed: {e}")
            st.error(e.message or "Registration failed. Please try again. / فشل في التسجيل. يرجى المحاولة مرة أخرى.")
        else:
            st.session_state.registration_done = True
            st.rerun()

    st.markdown("Already have an account? / لديك حساب بالفعل؟")
    if st.button("Login / تسجيل دخول", key="goto_login"):
        navigate(ROOT_PATH)


# ==================== DASHBOARDS ====================


@require_role(Role.STUDENT)
def render_student_dashboard(user: User, portal: PortalContext) -> None:
    dashboard = portal.dashboard_for(user)
    render_header(user, portal, f"{APP_NAME} Assistant")

    if not dashboard.assistant_enabled:
        st.warning("⚠️ Completion API key not configured. Set OPENAI_API_KEY in secrets or environment.")

    if not dashboard.messages:
        st.info(f"👋 Hi {user.name}! Ask me anything. / اسألني أي شيء.")

    for message in dashboard.messages:
        with st.chat_message(message.role):
            st.markdown(message.content)

    if prompt := st.chat_input(f"Ask {APP_NAME} anything... / اسأل لومين أي شيء..."):
        with st.chat_message("user"):
            st.markdown(prompt)
        with st.chat_message("assistant"):
            with st.spinner("Thinking..."):
                reply = dashboard.send(prompt)
            if reply is not None:
                st.markdown(reply.content)


@require_role(Role.TEACHER)
def render_teacher_dashboard(user: User, portal: PortalContext) -> None:
    dashboard = portal.dashboard_for(user)
    render_header(user, portal, "Teacher Dashboard / لوحة المعلم")

    st.markdown("### Add Material / إضافة مادة")
    with st.form("material_form", clear_on_submit=True):
        content = st.text_area(
            "Material Content / محتوى المادة",
            placeholder="Enter your educational material here... / أدخل المادة التعليمية هنا...",
        )
        submitted = st.form_submit_button("Add Material / إضافة مادة")

    if submitted:
        try:
            with st.spinner("Adding... / جاري الإضافة..."):
                dashboard.add_material(content)
        except DataError:
            st.error("Failed to add material. Please try again. / فشل في إضافة المادة. يرجى المحاولة مرة أخرى.")

    st.markdown("### My Materials / موادي")
    if dashboard.load_error:
        st.warning("Could not load your materials. / تعذر تحميل المواد.")
    elif not dashboard.materials:
        st.caption("No materials yet. / لا توجد مواد بعد.")

    for index, material in enumerate(dashboard.materials, 1):
        with st.container(border=True):
            st.markdown(f"**Material #{index} / المادة رقم {index}** · {material.created_at:%Y-%m-%d}")
            st.text(material.content)


@require_role(Role.ADMIN)
def render_admin_dashboard(user: User, portal: PortalContext) -> None:
    dashboard = portal.dashboard_for(user)
    render_header(user, portal, "Admin Dashboard / لوحة المدير")

    if not dashboard.show_users:
        if st.button("Manage Users / إدارة المستخدمين", key="manage_users"):
            try:
                dashboard.open_users()
            except DataError:
                st.error("Failed to load users. Please try again. / فشل في تحميل المستخدمين. يرجى المحاولة مرة أخرى.")
            else:
                st.rerun()
        return

    if st.button("Hide Users / إخفاء المستخدمين", key="hide_users"):
        dashboard.hide_users()
        st.rerun()

    pending = st.session_state.get("pending_delete")

    for profile in dashboard.users:
        with st.container(border=True):
            col1, col2 = st.columns([4, 1])
            with col1:
                st.markdown(f"{profile.role.icon} **{profile.name}** · {profile.role.label}")
                if profile.email:
                    st.caption(profile.email)
                if profile.student_id:
                    st.caption(
                        f"ID: {profile.student_id} | {major_label(profile.major)} | "
                        f"{academic_year_label(profile.academic_year)}"
                    )
            with col2:
                if dashboard.can_delete(profile.id):
                    if st.button("🗑️", key=f"delete_{profile.id}", help="Delete user / حذف المستخدم"):
                        st.session_state.pending_delete = profile.id
                        st.rerun()
                else:
                    st.caption("You / أنت")

            if pending == profile.id:
                st.warning(
                    "Are you sure you want to delete this user? This action is irreversible. / "
                    "هل أنت متأكد من حذف هذا المستخدم؟ هذا الإجراء لا يمكن التراجع عنه."
                )
                confirm_col, cancel_col = st.columns(2)
                if confirm_col.button("Delete / حذف", key=f"confirm_delete_{profile.id}"):
                    st.session_state.pending_delete = None
                    try:
                        dashboard.delete_user(profile.id)
                    except DataError:
                        st.error("Failed to delete user. Please try again. / فشل في حذف المستخدم. يرجى المحاولة مرة أخرى.")
                    else:
                        st.rerun()
                if cancel_col.button("Cancel / إلغاء", key=f"cancel_delete_{profile.id}"):
                    st.session_state.pending_delete = None
                    st.rerun()
