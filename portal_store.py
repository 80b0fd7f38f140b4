"""
portal_store.py
===============
Owner of the canonical User / StudentData collections.

Every write goes through a PortalStore method; readers get deep copies, so
reconciliation and the UI only ever see snapshots. Batch commits validate the
whole batch first and then apply it under one lock: a commit either lands
completely or not at all.
"""

import copy
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from config import Settings, load_settings
from errors import (
    DuplicateRollNumberError, IntegrityError, InvalidRollNumberError, RoleChangeError, UnknownUserError,
)
from models import (
    Assignment, FeeInstallment, MidTermMarks, ParsedAttendanceRecord, ParsedStudent,
    Role, StudentData, User, YearMarks, YearlyFee, roll_key,
)

logger = logging.getLogger(__name__)

STAFF_ROLL_PREFIX = "T"


@dataclass
class NewStudent:
    user: User
    data: StudentData


class PortalStore:
    def __init__(self, users: Iterable[User] = (), student_data: Iterable[StudentData] = (),
                 settings: Settings = None):
        self._settings = settings or load_settings()
        self._users: List[User] = copy.deepcopy(list(users))
        self._student_data: List[StudentData] = copy.deepcopy(list(student_data))
        self._lock = threading.RLock()
        start = max([u.id for u in self._users] + [sd.id for sd in self._student_data] + [0]) + 1
        self._ids = itertools.count(start)

    # ── Reads (snapshots) ────────────────────────────────────────────────────

    def users(self) -> List[User]:
        with self._lock:
            return copy.deepcopy(self._users)

    def student_data(self) -> List[StudentData]:
        with self._lock:
            return copy.deepcopy(self._student_data)

    def snapshot(self) -> Tuple[List[User], List[StudentData]]:
        with self._lock:
            return copy.deepcopy(self._users), copy.deepcopy(self._student_data)

    def get_user(self, user_id: int) -> User:
        with self._lock:
            return copy.deepcopy(self._user_by_id(user_id))

    def find_by_roll(self, roll_number: str) -> Optional[User]:
        key = roll_key(roll_number)
        with self._lock:
            for user in self._users:
                if roll_key(user.roll_number) == key:
                    return copy.deepcopy(user)
        return None

    def get_student_data(self, user_id: int) -> Optional[StudentData]:
        with self._lock:
            for sd in self._student_data:
                if sd.user_id == user_id:
                    return copy.deepcopy(sd)
        return None

    def next_id(self) -> int:
        with self._lock:
            return next(self._ids)

    # ── Internals ────────────────────────────────────────────────────────────

    def _user_by_id(self, user_id: int) -> User:
        for user in self._users:
            if user.id == user_id:
                return user
        raise UnknownUserError(user_id)

    def _roll_taken(self, roll_number: str, exclude_id: Optional[int] = None) -> bool:
        key = roll_key(roll_number)
        return any(roll_key(u.roll_number) == key and u.id != exclude_id for u in self._users)

    def _new_student_data(self, user_id: int, academic_year: int, total_fees: float,
                          paid_fees: float) -> StudentData:
        first_due, second_due = self._settings.installment_due_dates
        data = StudentData(id=user_id, user_id=user_id,
                           mid_1=MidTermMarks(), mid_2=MidTermMarks())
        data.fees[f"year{academic_year}"] = YearlyFee(
            installment1=FeeInstallment(total_fees / 2, paid_fees, first_due, "Due"),
            installment2=FeeInstallment(total_fees / 2, 0, second_due, "Due"),
        )
        setattr(data, f"year{academic_year}_1", YearMarks())
        return data

    # ── Entity builders ──────────────────────────────────────────────────────

    def build_imported_student(self, candidate: ParsedStudent, roll_number: str) -> NewStudent:
        """User + StudentData skeleton for an accepted import row (not yet committed)."""
        user_id = self.next_id()
        user = User(
            id=user_id,
            name=candidate.name,
            roll_number=roll_number,
            password=self._settings.default_password,
            role=Role.STUDENT,
            department=candidate.department,
            section=candidate.section,
            is_lateral_entry=candidate.is_lateral_entry,
            email=candidate.email,
            phone=candidate.phone,
        )
        total = candidate.total_fees if candidate.total_fees is not None else self._settings.default_total_fees
        data = self._new_student_data(user_id, candidate.academic_year, total, candidate.paid_fees or 0)
        return NewStudent(user, data)

    # ── Batch commits ────────────────────────────────────────────────────────

    def commit_students(self, accepted: List[NewStudent]) -> int:
        """Append a batch of new students. Raises IntegrityError and applies nothing on conflict."""
        with self._lock:
            seen = set()
            existing_ids = {u.id for u in self._users}
            for item in accepted:
                key = roll_key(item.user.roll_number)
                if not key:
                    raise IntegrityError(f"{item.user.name} has no roll number")
                if key in seen or self._roll_taken(key):
                    raise IntegrityError(f"Roll number {item.user.roll_number} already exists")
                if item.user.id in existing_ids or item.data.user_id != item.user.id:
                    raise IntegrityError(f"Bad id for {item.user.name}")
                if item.user.role != Role.STUDENT:
                    raise IntegrityError(f"{item.user.name} is not a student")
                seen.add(key)
                existing_ids.add(item.user.id)

            self._users.extend(copy.deepcopy(item.user) for item in accepted)
            self._student_data.extend(copy.deepcopy(item.data) for item in accepted)

        logger.info("Committed %d new student(s)", len(accepted))
        return len(accepted)

    def commit_attendance(self, records: List[ParsedAttendanceRecord]) -> int:
        """
        Merge monthly attendance, replacing any entry with the same
        (month, year) and appending otherwise. Re-applying a batch is a no-op.
        Returns the number of records applied.
        """
        with self._lock:
            user_ids = {roll_key(u.roll_number): u.id for u in self._users if u.role == Role.STUDENT}
            updated = {sd.user_id: copy.deepcopy(sd) for sd in self._student_data}
            applied = 0
            for rec in records:
                data = updated.get(user_ids.get(roll_key(rec.roll_number)))
                if data is None:
                    logger.warning("Skipping attendance for unknown roll number %s", rec.roll_number)
                    continue
                pos = data.find_attendance(rec.month, rec.year)
                if pos >= 0:
                    data.monthly_attendance[pos] = rec.to_record()
                else:
                    data.monthly_attendance.append(rec.to_record())
                applied += 1
            self._student_data = [updated[sd.user_id] for sd in self._student_data]

        logger.info("Applied %d attendance record(s)", applied)
        return applied

    # ── Single-entity edits ──────────────────────────────────────────────────

    def add_student(self, name: str, roll_number: str, department: str, year: int,
                    section: str, password: str, is_lateral_entry: bool = False,
                    email: str = None, phone: str = None, photo_url: str = None) -> NewStudent:
        roll_number = (roll_number or "").strip().upper()
        if not roll_number:
            raise InvalidRollNumberError("Roll number is required")
        if year not in (1, 2, 3, 4):
            raise ValueError(f"academic year must be 1-4, got {year!r}")
        with self._lock:
            if self._roll_taken(roll_number):
                raise DuplicateRollNumberError(roll_number)
            user_id = self.next_id()
            user = User(user_id, name, roll_number, password, Role.STUDENT, department,
                        section=section, is_lateral_entry=is_lateral_entry,
                        email=email, phone=phone, photo_url=photo_url)
            total = self._settings.manual_installment_total * 2
            item = NewStudent(user, self._new_student_data(user_id, year, total, 0))
            self.commit_students([item])
        return item

    def add_staff(self, name: str, roll_number: str, password: str, department: str,
                  assignments: Iterable[Assignment] = (), email: str = None,
                  phone: str = None) -> User:
        roll_number = (roll_number or "").strip().upper()
        if not roll_number.startswith(STAFF_ROLL_PREFIX):
            raise InvalidRollNumberError(f"Staff ID must start with '{STAFF_ROLL_PREFIX}'")
        with self._lock:
            if self._roll_taken(roll_number):
                raise DuplicateRollNumberError(roll_number)
            user = User(self.next_id(), name, roll_number, password, Role.STAFF, department,
                        email=email, phone=phone, assignments=list(assignments))
            self._users.append(user)
        logger.info("Added staff %s", roll_number)
        return copy.deepcopy(user)

    def update_user(self, updated: User) -> None:
        roll = (updated.roll_number or "").strip()
        if not roll:
            raise InvalidRollNumberError("Roll number is required")
        with self._lock:
            current = self._user_by_id(updated.id)
            # StudentData exists exactly for users of role student
            if updated.role != current.role:
                raise RoleChangeError(
                    f"Cannot change {current.roll_number} from {current.role.value} to {updated.role.value}")
            if updated.role == Role.STAFF and not roll.upper().startswith(STAFF_ROLL_PREFIX):
                raise InvalidRollNumberError(f"Staff ID must start with '{STAFF_ROLL_PREFIX}'")
            if self._roll_taken(roll, exclude_id=updated.id):
                raise DuplicateRollNumberError(roll)
            self._users[self._users.index(current)] = copy.deepcopy(updated)

    def update_student_data(self, updated: StudentData) -> None:
        with self._lock:
            for i, sd in enumerate(self._student_data):
                if sd.user_id == updated.user_id:
                    self._student_data[i] = copy.deepcopy(updated)
                    return
        raise UnknownUserError(updated.user_id)

    def delete_user(self, user_id: int) -> None:
        """Remove a user; a student's StudentData goes with it."""
        with self._lock:
            user = self._user_by_id(user_id)
            self._users.remove(user)
            self._student_data = [sd for sd in self._student_data if sd.user_id != user_id]
        logger.info("Deleted user %s (%s)", user.roll_number, user.role.value)
