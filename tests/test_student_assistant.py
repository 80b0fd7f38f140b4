from models import (
    AttendanceRecord, FeeInstallment, ImportantUpdate, MarkItem, MidTermMarks, MidTermSubject,
    Role, StudentData, User, YearMarks, YearlyFee,
)
from student_assistant import build_student_prompt


def student():
    return User(1, "Asha", "24KP1A0401", "pw", Role.STUDENT, "ECE", section="A")


def data():
    return StudentData(
        id=1, user_id=1,
        monthly_attendance=[AttendanceRecord(m, 2024, 18, 20) for m in ("January", "February", "March", "April")],
        fees={"year1": YearlyFee(FeeInstallment(25000, 25000, "2024-08-15", "Paid"),
                                 FeeInstallment(25000, 0, "2025-02-15", "Due"))},
        important_updates=[ImportantUpdate("2024-03-01", "Lab record due")],
        mid_1=MidTermMarks([MidTermSubject("Maths", 24, 30)]),
        year1_1=YearMarks(subjects=[MarkItem("Physics", "F", 3)], total_credits=20, earned_credits=17),
    )


def test_student_prompt_contains_their_data():
    prompt = build_student_prompt(student(), data(), "  Did I fail anything? ")
    assert "You are speaking to Asha (Roll No: 24KP1A0401, Email: Not provided" in prompt
    assert "ACADEMIC DATA FOR ASHA" in prompt
    assert "- Overall Percentage: 90.0%" in prompt
    # only the three most recent months
    assert "- January 2024" not in prompt
    assert "- April 2024: 18/20 days (90%)" in prompt
    assert "- Overall Amount Due (All Years): ₹25,000" in prompt
    assert "- Installment 2: Paid ₹0 of ₹25,000. Status: Due. Due: 2025-02-15." in prompt
    assert "- Physics: Grade F (3 credits)" in prompt
    assert "- Maths: 24/30 marks" in prompt
    assert "YEAR(4-2):\nNo data available yet." in prompt
    assert "- 2024-03-01: Lab record due" in prompt
    assert prompt.endswith('"Did I fail anything?"')


def test_staff_question_passes_through():
    staff = User(9, "Rao", "T1", "pw", Role.STAFF, "ECE")
    assert build_student_prompt(staff, None, " Hello ") == "Hello"
