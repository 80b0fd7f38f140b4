import io

import pytest
from docx import Document

from config import Settings
from models import (
    Assignment, AttendanceRecord, ParsedAttendanceRecord, ParsedStudent, Role, StudentData, User,
    YearMarks,
)
from portal_store import PortalStore


@pytest.fixture
def settings():
    return Settings(gemini_api_key="test-key")


@pytest.fixture
def staff_user():
    return User(
        id=100, name="Dr. K. Rao", roll_number="T1001", password="pw", role=Role.STAFF,
        department="ECE", assignments=[Assignment("ECE", 1, "A")],
    )


@pytest.fixture
def existing_student():
    return User(
        id=1, name="Asha", roll_number="24KP1A0401", password="pw", role=Role.STUDENT,
        department="ECE", section="A",
    )


@pytest.fixture
def existing_data():
    return StudentData(
        id=1, user_id=1,
        monthly_attendance=[AttendanceRecord("January", 2024, 20, 22)],
        year1_1=YearMarks(),
    )


@pytest.fixture
def store(settings, staff_user, existing_student, existing_data):
    return PortalStore([staff_user, existing_student], [existing_data], settings=settings)


@pytest.fixture
def empty_store(settings):
    return PortalStore(settings=settings)


def make_student(name="B", department="ECE", year="1", **kwargs):
    return ParsedStudent(name=name, department=department, year=year, **kwargs)


def make_attendance(roll="24KP1A0401", month="January", year=2024, present=21, total=22):
    return ParsedAttendanceRecord(roll, month, year, present, total)


def docx_bytes(*lines):
    doc = Document()
    for line in lines:
        doc.add_paragraph(line)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()
