"""Pydantic models for Lumen portal data."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Closed set of account roles."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]

    @property
    def icon(self) -> str:
        return ROLE_ICONS[self]


ROLE_LABELS = {
    Role.STUDENT: "Student / طالب",
    Role.TEACHER: "Teacher / معلم",
    Role.ADMIN: "Admin / مدير",
}

ROLE_ICONS = {
    Role.STUDENT: "🎓",
    Role.TEACHER: "👨‍🏫",
    Role.ADMIN: "⚙️",
}

MAJORS = {
    "ict": "تكنولوجيا المعلومات والاتصالات / ICT",
    "it": "تقنية المعلومات / IT",
    "cs": "علوم الحاسوب / CS",
    "is": "نظم المعلومات / IS",
    "dip-it": "دبلوم تقنية المعلومات / DIP.IT",
}

ACADEMIC_YEARS = {
    "first": "First Year / السنة الأولى",
    "second": "Second Year / السنة الثانية",
    "third": "Third Year / السنة الثالثة",
    "fourth": "Fourth Year / السنة الرابعة",
    "fifth": "Fifth Year / السنة الخامسة",
    "graduate": "Graduate / دراسات عليا",
}


def major_label(major: Optional[str]) -> str:
    """Display label for a major code; unknown codes are shown verbatim."""
    if not major:
        return ""
    return MAJORS.get(major, major)


def academic_year_label(academic_year: Optional[str]) -> str:
    if not academic_year:
        return ""
    return ACADEMIC_YEARS.get(academic_year, academic_year)


class StudentData(BaseModel):
    """Student-only registration fields."""

    student_id: str
    major: str
    academic_year: str


class Profile(BaseModel):
    """Row of the ``profiles`` table.

    Validation fails for a role outside the Role enumeration.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    role: Role
    email: Optional[str] = None
    student_id: Optional[str] = None
    major: Optional[str] = None
    academic_year: Optional[str] = None


class User(BaseModel):
    """Resolved identity: session fields merged with the profile."""

    id: str
    email: Optional[str] = None
    name: str
    role: Role
    student_id: Optional[str] = None
    major: Optional[str] = None
    academic_year: Optional[str] = None

    @classmethod
    def from_session_and_profile(cls, user_id: str, email: Optional[str], profile: Profile) -> User:
        return cls(
            id=user_id,
            email=email,
            name=profile.name,
            role=profile.role,
            student_id=profile.student_id,
            major=profile.major,
            academic_year=profile.academic_year,
        )


class Material(BaseModel):
    """Row of the ``materials`` table."""

    model_config = ConfigDict(extra="ignore")

    id: str
    teacher_id: str
    content: str
    created_at: datetime


class ChatMessage(BaseModel):
    """One entry of the student assistant transcript."""

    role: str  # "user" or "assistant"
    content: str
