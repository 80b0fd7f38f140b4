"""
roll_numbers.py
===============
10-character student roll numbers:

    YY  KP  1A|4A  BB  SS
    │   │   │      │   └─ serial within the prefix, zero-padded
    │   │   │      └───── branch (department) code, "00" if unmapped
    │   │   └──────────── entry type: 1A regular, 4A lateral
    │   └──────────────── college code
    └──────────────────── last two digits of the admission year
"""

from datetime import date
from typing import Iterable, Optional

COLLEGE_CODE = "KP"
REGULAR_ENTRY_CODE = "1A"
LATERAL_ENTRY_CODE = "4A"
UNMAPPED_BRANCH_CODE = "00"
MAX_SERIAL = 99

DEPARTMENT_CODES = {
    "ECE":   "04",
    "EVT":   "66",
    "CSE":   "05",
    "AIML":  "61",
    "IT":    "12",
    "DSD":   "44",
    "CIVIL": "01",
}


class RollNumberExhausted(ValueError):
    """Every serial under a prefix is taken."""


def admission_year(academic_year: int, is_lateral_entry: bool, current_year: int) -> int:
    # Lateral students join in year 2, so they were admitted one year later
    return current_year - (academic_year - (2 if is_lateral_entry else 1))


def roll_prefix(department: str, academic_year: int, is_lateral_entry: bool,
                current_year: Optional[int] = None) -> str:
    current_year = current_year or date.today().year
    year_code = str(admission_year(academic_year, is_lateral_entry, current_year))[-2:]
    entry_code = LATERAL_ENTRY_CODE if is_lateral_entry else REGULAR_ENTRY_CODE
    branch_code = DEPARTMENT_CODES.get((department or "").strip().upper(), UNMAPPED_BRANCH_CODE)
    return f"{year_code}{COLLEGE_CODE}{entry_code}{branch_code}"


def next_serial(prefix: str, existing_roll_numbers: Iterable[str]) -> int:
    prefix = prefix.upper()
    serials = []
    for roll in existing_roll_numbers:
        roll = (roll or "").strip().upper()
        tail = roll[-2:]
        if roll.startswith(prefix) and tail.isdigit():
            serials.append(int(tail))
    return max(serials) + 1 if serials else 1


def generate_roll_number(department: str, academic_year: int, is_lateral_entry: bool,
                         existing_roll_numbers: Iterable[str],
                         current_year: Optional[int] = None) -> str:
    """
    Next free roll number for the given cohort.

    Pure function of its arguments: callers generating a batch must pass the
    numbers already handed out in that batch as part of existing_roll_numbers.
    """
    if academic_year not in (1, 2, 3, 4):
        raise ValueError(f"academic year must be 1-4, got {academic_year!r}")
    prefix = roll_prefix(department, academic_year, is_lateral_entry, current_year)
    serial = next_serial(prefix, existing_roll_numbers)
    if serial > MAX_SERIAL:
        raise RollNumberExhausted(f"no serials left under prefix {prefix}")
    return f"{prefix}{serial:02d}"
