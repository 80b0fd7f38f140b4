from datetime import date

from models import (
    Assignment, AttendanceRecord, FeeInstallment, Role, StudentData, User, YearMarks, roll_key,
)


def test_roll_key():
    assert roll_key("  24kp1a0401 ") == "24KP1A0401"
    assert roll_key(None) == ""


def test_assignment_cover_is_case_insensitive():
    staff = User(1, "S", "T1", "pw", Role.STAFF, "ECE", assignments=[Assignment("ece", 2, "a")])
    assert staff.can_access("ECE", 2, "A")
    assert not staff.can_access("ECE", 1, "A")
    assert not staff.can_access("ECE", 2, None)


def test_super_admin_sees_everything():
    admin = User(1, "Admin", "TADMIN", "pw", Role.SUPER_ADMIN, "ALL")
    assert admin.can_access("CIVIL", 4, "Z")


def test_installment_status():
    inst = FeeInstallment(25000, 30000, "2024-08-15")
    assert inst.refresh_status(date(2024, 9, 1)) == "Paid"
    assert inst.paid == 25000

    inst = FeeInstallment(25000, 100, "2024-08-15")
    assert inst.refresh_status(date(2024, 8, 15)) == "Due"
    assert inst.refresh_status(date(2024, 8, 16)) == "Overdue"


def test_current_year_follows_marks():
    data = StudentData(1, 1)
    assert data.current_year == 1
    data.year3_2 = YearMarks()
    assert data.current_year == 3


def test_find_attendance_and_overall():
    data = StudentData(1, 1, monthly_attendance=[
        AttendanceRecord("January", 2024, 10, 20), AttendanceRecord("February", 2024, 20, 20),
    ])
    assert data.find_attendance("FEBRUARY", 2024) == 1
    assert data.find_attendance("February", 2025) == -1
    assert data.overall_attendance() == 75.0
