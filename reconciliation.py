"""
reconciliation.py
=================
Classifies extracted candidate rows against a snapshot of the canonical
collections. Nothing here mutates state: the result is an ImportReport the
operator reviews and the store later applies.

Student rows   → New | Duplicate | No Access | Roll Number Failed | Malformed
Attendance rows → New | Update | Not Found | No Access | Malformed
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, List, Optional

import pandas as pd

from models import MalformedRecord, Role, StudentData, User, roll_key
from roll_numbers import generate_roll_number

logger = logging.getLogger(__name__)


class RowStatus(str, Enum):
    NEW = "New"
    UPDATE = "Update"
    DUPLICATE = "Duplicate"
    NO_ACCESS = "No Access"
    ROLL_NUMBER_FAILED = "Roll Number Failed"
    NOT_FOUND = "Not Found"
    MALFORMED = "Malformed"


ELIGIBLE_STATUSES = {RowStatus.NEW, RowStatus.UPDATE}

SKIP_REASONS = {
    RowStatus.DUPLICATE:          "their roll numbers already exist",
    RowStatus.NO_ACCESS:          "they are outside your assigned classes",
    RowStatus.ROLL_NUMBER_FAILED: "no roll number could be determined",
    RowStatus.NOT_FOUND:          "they belong to unknown students",
    RowStatus.MALFORMED:          "they are incomplete or malformed",
}


@dataclass
class ClassifiedRow:
    index: int
    status: RowStatus
    candidate: object
    roll_number: str = ""
    student_name: str = ""
    detail: str = ""

    @property
    def eligible(self) -> bool:
        return self.status in ELIGIBLE_STATUSES


@dataclass
class ImportReport:
    kind: str
    rows: List[ClassifiedRow] = field(default_factory=list)

    @property
    def eligible(self) -> List[ClassifiedRow]:
        return [r for r in self.rows if r.eligible]

    @property
    def skipped(self) -> List[ClassifiedRow]:
        return [r for r in self.rows if not r.eligible]

    def counts(self) -> Counter:
        return Counter(r.status for r in self.rows)

    def summary(self) -> str:
        """Operator-facing counts shown before commit."""
        counts = self.counts()
        message = f"Found {len(self.rows)} record(s). {len(self.eligible)} can be imported."
        for status, reason in SKIP_REASONS.items():
            if counts[status]:
                message += f" {counts[status]} will be skipped because {reason}."
        return message

    def feedback(self, applied: int) -> str:
        """Message shown after commit."""
        noun = "new students added" if self.kind == "students" else "records applied"
        message = f"Import processed: {len(self.rows)} total records."
        if applied:
            message += f" {applied} {noun}."
        counts = self.counts()
        if counts[RowStatus.DUPLICATE]:
            message += f" {counts[RowStatus.DUPLICATE]} duplicates skipped."
        if counts[RowStatus.NO_ACCESS]:
            message += (f" {counts[RowStatus.NO_ACCESS]} skipped because they do not belong "
                        "to any of your assigned groups.")
        if counts[RowStatus.NOT_FOUND]:
            rolls = ", ".join(dict.fromkeys(r.roll_number for r in self.rows
                                            if r.status == RowStatus.NOT_FOUND))
            message += f" {counts[RowStatus.NOT_FOUND]} skipped for unknown students ({rolls})."
        other = counts[RowStatus.MALFORMED] + counts[RowStatus.ROLL_NUMBER_FAILED]
        if other:
            message += f" {other} could not be read and were skipped."
        return message

    def to_dataframe(self) -> pd.DataFrame:
        records = [_row_to_display(self.kind, r) for r in self.rows]
        return pd.DataFrame(records)


def _row_to_display(kind: str, row: ClassifiedRow) -> dict:
    cand = row.candidate
    raw = cand.raw if isinstance(cand, MalformedRecord) else cand.to_dict()
    raw = raw if isinstance(raw, dict) else {}
    if kind == "students":
        return {
            "Status":     row.status.value,
            "Name":       raw.get("name", ""),
            "Roll No":    row.roll_number or raw.get("rollNumber") or "",
            "Email":      raw.get("email") or "",
            "Phone":      raw.get("phone") or "",
            "Dept":       raw.get("department", ""),
            "Year":       raw.get("year", ""),
            "Section":    raw.get("section") or "",
            "Total Fees": raw.get("totalFees"),
            "Paid Fees":  raw.get("paidFees"),
            "Detail":     row.detail,
        }
    return {
        "Status":       row.status.value,
        "Roll No":      row.roll_number or raw.get("rollNumber", ""),
        "Student Name": row.student_name,
        "Month":        raw.get("month", ""),
        "Year":         raw.get("year", ""),
        "Present":      raw.get("present"),
        "Total Days":   raw.get("total"),
        "Detail":       row.detail,
    }


def _staff_scoped(acting_user: Optional[User]) -> bool:
    return acting_user is not None and acting_user.role == Role.STAFF


# ══════════════════════════════════════════════════════════════════════════════
# Student import
# ══════════════════════════════════════════════════════════════════════════════

def classify_students(candidates: Iterable, users: Iterable[User],
                      acting_user: Optional[User] = None,
                      current_year: Optional[int] = None) -> ImportReport:
    """
    Classify roster candidates in the order received.

    Generated roll numbers account for rows accepted earlier in the same
    batch, and duplicate detection covers both the existing users and the
    batch itself.
    """
    current_year = current_year or date.today().year
    known_rolls = [u.roll_number for u in users]
    taken = {roll_key(r) for r in known_rolls}
    report = ImportReport("students")

    for index, cand in enumerate(candidates):
        if isinstance(cand, MalformedRecord):
            report.rows.append(ClassifiedRow(index, RowStatus.MALFORMED, cand, detail=cand.reason))
            continue

        year = cand.academic_year
        if _staff_scoped(acting_user) and not acting_user.can_access(cand.department, year, cand.section):
            report.rows.append(ClassifiedRow(
                index, RowStatus.NO_ACCESS, cand,
                roll_number=(cand.roll_number or "").strip(),
                student_name=cand.name,
                detail=f"{cand.department} - Year {cand.year} - Sec {cand.section or '?'}",
            ))
            continue

        roll = (cand.roll_number or "").strip()
        if not roll:
            try:
                roll = generate_roll_number(cand.department, year, cand.is_lateral_entry,
                                            known_rolls, current_year)
            except ValueError as e:
                report.rows.append(ClassifiedRow(index, RowStatus.ROLL_NUMBER_FAILED, cand,
                                                 student_name=cand.name, detail=str(e)))
                continue

        if roll_key(roll) in taken:
            report.rows.append(ClassifiedRow(index, RowStatus.DUPLICATE, cand, roll_number=roll,
                                             student_name=cand.name,
                                             detail=f"roll number {roll} is a duplicate"))
            continue

        taken.add(roll_key(roll))
        known_rolls.append(roll)
        report.rows.append(ClassifiedRow(index, RowStatus.NEW, cand, roll_number=roll,
                                         student_name=cand.name))

    logger.info("Classified %d student row(s): %s", len(report.rows),
                {s.value: n for s, n in report.counts().items()})
    return report


# ══════════════════════════════════════════════════════════════════════════════
# Attendance import
# ══════════════════════════════════════════════════════════════════════════════

def classify_attendance(records: Iterable, users: Iterable[User],
                        student_data: Iterable[StudentData],
                        acting_user: Optional[User] = None) -> ImportReport:
    students = {roll_key(u.roll_number): u for u in users if u.role == Role.STUDENT}
    data_by_user = {sd.user_id: sd for sd in student_data}
    report = ImportReport("attendance")

    for index, rec in enumerate(records):
        if isinstance(rec, MalformedRecord):
            raw = rec.raw if isinstance(rec.raw, dict) else {}
            report.rows.append(ClassifiedRow(index, RowStatus.MALFORMED, rec,
                                             roll_number=str(raw.get("rollNumber") or ""),
                                             detail=rec.reason))
            continue

        user = students.get(roll_key(rec.roll_number))
        if user is None:
            report.rows.append(ClassifiedRow(index, RowStatus.NOT_FOUND, rec,
                                             roll_number=rec.roll_number))
            continue

        data = data_by_user.get(user.id)
        if _staff_scoped(acting_user):
            year = data.current_year if data else 1
            if not acting_user.can_access(user.department, year, user.section):
                report.rows.append(ClassifiedRow(index, RowStatus.NO_ACCESS, rec,
                                                 roll_number=rec.roll_number,
                                                 student_name=user.name))
                continue

        if data is None:
            # Nothing to merge into at commit time
            report.rows.append(ClassifiedRow(index, RowStatus.NOT_FOUND, rec,
                                             roll_number=rec.roll_number, student_name=user.name,
                                             detail="no student record"))
            continue

        status = RowStatus.NEW
        if data.find_attendance(rec.month, rec.year) >= 0:
            status = RowStatus.UPDATE
        report.rows.append(ClassifiedRow(index, status, rec, roll_number=rec.roll_number,
                                         student_name=user.name))

    logger.info("Classified %d attendance row(s): %s", len(report.rows),
                {s.value: n for s, n in report.counts().items()})
    return report
