"""
models.py
=========
Portal entities (User, StudentData and their parts) and the transient
candidate records produced by document extraction.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional


ACADEMIC_PERIODS = [
    "mid_1", "mid_2",
    "year1_1", "year1_2", "year2_1", "year2_2",
    "year3_1", "year3_2", "year4_1", "year4_2",
]

MONTHS = list(calendar.month_name)[1:]


class Role(str, Enum):
    STUDENT = "student"
    STAFF = "staff"
    SUPER_ADMIN = "super_admin"


def roll_key(roll_number: Optional[str]) -> str:
    """Comparison key for roll numbers: trimmed and case-folded."""
    return (roll_number or "").strip().upper()


def _norm(value) -> str:
    return str(value or "").strip().upper()


# ══════════════════════════════════════════════════════════════════════════════
# Users
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Assignment:
    department: str
    year: int
    section: str

    def covers(self, department: str, year: int, section: Optional[str]) -> bool:
        return (
            _norm(self.department) == _norm(department)
            and self.year == year
            and _norm(self.section) == _norm(section)
        )


@dataclass
class User:
    id: int
    name: str
    roll_number: str
    password: str
    role: Role
    department: str
    section: Optional[str] = None
    is_lateral_entry: Optional[bool] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    photo_url: Optional[str] = None
    assignments: List[Assignment] = field(default_factory=list)

    def can_access(self, department: str, year: int, section: Optional[str]) -> bool:
        if self.role == Role.SUPER_ADMIN:
            return True
        return any(a.covers(department, year, section) for a in self.assignments)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "rollNumber": self.roll_number,
            "role": self.role.value,
            "department": self.department,
            "section": self.section,
            "isLateralEntry": self.is_lateral_entry,
            "email": self.email,
            "phone": self.phone,
            "photoUrl": self.photo_url,
            "assignments": [
                {"department": a.department, "year": a.year, "section": a.section}
                for a in self.assignments
            ],
        }


# ══════════════════════════════════════════════════════════════════════════════
# Student records
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class AttendanceRecord:
    month: str
    year: int
    present: int
    total: int

    def matches(self, month: str, year: int) -> bool:
        return self.month.lower() == month.lower() and self.year == year


@dataclass
class FeeInstallment:
    total: float
    paid: float
    due_date: str
    status: str = "Due"

    def refresh_status(self, today: Optional[date] = None) -> str:
        """Clamp paid to total and recompute Paid / Overdue / Due."""
        self.paid = min(self.paid, self.total)
        today_iso = (today or date.today()).isoformat()
        if self.paid >= self.total:
            self.status = "Paid"
        elif today_iso > self.due_date:
            self.status = "Overdue"
        else:
            self.status = "Due"
        return self.status


@dataclass
class YearlyFee:
    installment1: FeeInstallment
    installment2: FeeInstallment

    @property
    def total(self) -> float:
        return self.installment1.total + self.installment2.total

    @property
    def paid(self) -> float:
        return self.installment1.paid + self.installment2.paid


@dataclass
class MarkItem:
    name: str
    grade: str
    credits: float


@dataclass
class YearMarks:
    subjects: List[MarkItem] = field(default_factory=list)
    labs: List[MarkItem] = field(default_factory=list)
    total_credits: float = 0
    earned_credits: float = 0


@dataclass
class MidTermSubject:
    name: str
    score: float
    max_score: float = 100


@dataclass
class MidTermMarks:
    subjects: List[MidTermSubject] = field(default_factory=list)


@dataclass
class ImportantUpdate:
    date: str
    text: str


@dataclass
class StudentData:
    id: int
    user_id: int
    monthly_attendance: List[AttendanceRecord] = field(default_factory=list)
    daily_attendance: Dict[str, List[str]] = field(default_factory=dict)
    fees: Dict[str, YearlyFee] = field(default_factory=dict)
    important_updates: List[ImportantUpdate] = field(default_factory=list)
    mid_1: Optional[MidTermMarks] = None
    mid_2: Optional[MidTermMarks] = None
    year1_1: Optional[YearMarks] = None
    year1_2: Optional[YearMarks] = None
    year2_1: Optional[YearMarks] = None
    year2_2: Optional[YearMarks] = None
    year3_1: Optional[YearMarks] = None
    year3_2: Optional[YearMarks] = None
    year4_1: Optional[YearMarks] = None
    year4_2: Optional[YearMarks] = None

    @property
    def current_year(self) -> int:
        """Highest academic year with a populated marks slot (1 if none)."""
        for year in (4, 3, 2):
            if getattr(self, f"year{year}_1") or getattr(self, f"year{year}_2"):
                return year
        return 1

    def find_attendance(self, month: str, year: int) -> int:
        for i, record in enumerate(self.monthly_attendance):
            if record.matches(month, year):
                return i
        return -1

    def overall_attendance(self) -> float:
        present = sum(r.present for r in self.monthly_attendance)
        total = sum(r.total for r in self.monthly_attendance)
        return round(present / total * 100, 1) if total else 0.0


# ══════════════════════════════════════════════════════════════════════════════
# Candidate records (pre-commit)
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class ParsedStudent:
    name: str
    department: str
    year: str
    roll_number: Optional[str] = None
    section: Optional[str] = None
    is_lateral_entry: bool = False
    total_fees: Optional[float] = None
    paid_fees: Optional[float] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def academic_year(self) -> int:
        return int(self.year)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "rollNumber": self.roll_number,
            "department": self.department,
            "year": self.year,
            "section": self.section,
            "isLateralEntry": self.is_lateral_entry,
            "email": self.email,
            "phone": self.phone,
            "totalFees": self.total_fees,
            "paidFees": self.paid_fees,
        }


@dataclass
class ParsedAttendanceRecord:
    roll_number: str
    month: str
    year: int
    present: int
    total: int

    def to_record(self) -> AttendanceRecord:
        return AttendanceRecord(self.month, self.year, self.present, self.total)

    def to_dict(self) -> dict:
        return {
            "rollNumber": self.roll_number,
            "month": self.month,
            "year": self.year,
            "present": self.present,
            "total": self.total,
        }


@dataclass
class MalformedRecord:
    """A model row that failed validation against the extraction contract."""
    index: int
    raw: object
    reason: str
