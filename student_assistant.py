"""Prompt construction for the portal's chat assistant."""

from typing import Optional

from models import MidTermMarks, Role, StudentData, User, YearMarks

PERIOD_TITLES = {
    "mid_1": "Mid-Term 1", "mid_2": "Mid-Term 2",
    "year1_1": "YEAR(1-1)", "year1_2": "YEAR(1-2)",
    "year2_1": "YEAR(2-1)", "year2_2": "YEAR(2-2)",
    "year3_1": "YEAR(3-1)", "year3_2": "YEAR(3-2)",
    "year4_1": "YEAR(4-1)", "year4_2": "YEAR(4-2)",
}

ASSISTANT_PROMPT = """You are an academic assistant AI integrated into a student portal.
You are speaking to {name} (Roll No: {roll}, Email: {email}, Phone: {phone}).
Answer their questions based ONLY on the academic data provided below.
Be friendly, encouraging, and present the information clearly.
For academic records, if a student has an 'F' grade, mention it clearly as a failed subject.
For Mid-Terms, report the marks as they are given.
If the answer is not in the data, say that you do not have access to that information. Do not make up any data.

ACADEMIC DATA FOR {name_upper}:
=========================
ATTENDANCE:
- Overall Percentage: {overall}%
- Recent Monthly Records:
{monthly}

FEE STATUS:
- Overall Total Fees (All Years): ₹{fee_total:,.0f}
- Overall Fees Paid (All Years): ₹{fee_paid:,.0f}
- Overall Amount Due (All Years): ₹{fee_due:,.0f}

Detailed Breakdown by Year:
{fees}

ACADEMIC RECORDS (MARKS, GRADES & CREDITS):
{records}

IMPORTANT UPDATES & REMARKS:
{updates}
=========================

Now, please answer this question from the student: "{question}\""""


def _year_marks(marks: Optional[YearMarks], title: str) -> str:
    if not marks:
        return f"{title}:\nNo data available yet."
    subjects = "\n".join(f"- {s.name}: Grade {s.grade} ({s.credits} credits)" for s in marks.subjects if s.name)
    labs = "\n".join(f"- {l.name}: Grade {l.grade} ({l.credits} credits)" for l in marks.labs if l.name)
    return (f"{title}:\nTheory Subjects:\n{subjects or 'N/A'}\nLabs:\n{labs or 'N/A'}\n"
            f"Result: Earned {marks.earned_credits} out of {marks.total_credits} total credits.")


def _mid_marks(marks: Optional[MidTermMarks], title: str) -> str:
    if not marks:
        return f"{title}:\nNo data available yet."
    subjects = "\n".join(f"- {s.name}: {s.score}/{s.max_score} marks" for s in marks.subjects if s.name)
    return f"{title}:\nSubjects:\n{subjects or 'N/A'}"


def _fees(data: StudentData) -> str:
    blocks = []
    for year_key, fee in data.fees.items():
        lines = [f"Year {year_key.replace('year', '')} Fees:"]
        for n, inst in enumerate((fee.installment1, fee.installment2), 1):
            lines.append(f"- Installment {n}: Paid ₹{inst.paid:,.0f} of ₹{inst.total:,.0f}. "
                         f"Status: {inst.status}. Due: {inst.due_date}.")
        blocks.append("\n".join(lines))
    return "\n".join(blocks) or "No fee records available."


def build_student_prompt(user: User, data: Optional[StudentData], question: str) -> str:
    """Wrap a student's question with their academic data; other roles get the question as-is."""
    question = question.strip()
    if user.role != Role.STUDENT or data is None:
        return question

    monthly = "\n".join(
        f"- {r.month} {r.year}: {r.present}/{r.total} days ({round(r.present / r.total * 100) if r.total else 0}%)"
        for r in data.monthly_attendance[-3:]
    )
    records = "\n\n".join(
        _mid_marks(getattr(data, key), title) if key.startswith("mid")
        else _year_marks(getattr(data, key), title)
        for key, title in PERIOD_TITLES.items()
    )
    updates = "\n".join(f"- {u.date}: {u.text}" for u in data.important_updates)
    fee_total = sum(f.total for f in data.fees.values())
    fee_paid = sum(f.paid for f in data.fees.values())

    return ASSISTANT_PROMPT.format(
        name=user.name,
        name_upper=user.name.upper(),
        roll=user.roll_number,
        email=user.email or "Not provided",
        phone=user.phone or "Not provided",
        overall=data.overall_attendance(),
        monthly=monthly or "No monthly records available.",
        fee_total=fee_total,
        fee_paid=fee_paid,
        fee_due=fee_total - fee_paid,
        fees=_fees(data),
        records=records,
        updates=updates or "No important updates available.",
        question=question,
    )
