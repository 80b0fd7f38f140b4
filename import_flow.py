"""
import_flow.py
==============
One roster or attendance import, driven stage by stage:

    Upload → Parsing → Review → Committed | Cancelled

Any failure while parsing sends the session back to Upload with the error
kept for display. Committed and Cancelled are terminal; a new import needs a
new session.
"""

import logging
from datetime import date
from enum import Enum
from typing import Optional

import gemini_service
from config import Settings, load_settings
from document_reader import read_document
from errors import (
    EmptyDocument, ExtractionFailed, IntegrityError, InvalidTransition, NoAssignments, NoRecordsFound,
    PortalError,
)
from models import Role, User
from portal_store import PortalStore
from reconciliation import ImportReport, classify_attendance, classify_students

logger = logging.getLogger(__name__)

STUDENTS = "students"
ATTENDANCE = "attendance"


class Stage(str, Enum):
    UPLOAD = "upload"
    PARSING = "parsing"
    REVIEW = "review"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class ImportSession:
    def __init__(self, store: PortalStore, kind: str, acting_user: Optional[User] = None,
                 settings: Settings = None, current_year: Optional[int] = None):
        if kind not in (STUDENTS, ATTENDANCE):
            raise ValueError(f"unknown import kind {kind!r}")
        self.store = store
        self.kind = kind
        self.acting_user = acting_user
        self.settings = settings or load_settings()
        self.current_year = current_year or date.today().year
        self.stage = Stage.UPLOAD
        self.error: Optional[str] = None
        self.report: Optional[ImportReport] = None

    @property
    def can_commit(self) -> bool:
        return self.stage == Stage.REVIEW and bool(self.report and self.report.eligible)

    def _require(self, *stages: Stage) -> None:
        if self.stage not in stages:
            raise InvalidTransition(f"cannot do that while the import is in stage '{self.stage.value}'")

    # ── Upload → Parsing → Review ────────────────────────────────────────────

    def _extract(self, data: bytes, file_name: str, mime_type: str) -> list:
        document = read_document(data, file_name, mime_type, allow_images=self.kind == ATTENDANCE)
        if document.is_blank():
            raise EmptyDocument()
        if self.kind == STUDENTS:
            return gemini_service.extract_students(document.text, self.settings)
        return gemini_service.extract_attendance(document, self.current_year, self.settings)

    def upload(self, data: bytes, file_name: str = "", mime_type: str = "") -> ImportReport:
        """Read, extract and classify one file. Raises the whole-flow error on failure."""
        self._require(Stage.UPLOAD)
        self.error = None
        self.stage = Stage.PARSING
        logger.info("Parsing %s import from %s", self.kind, file_name or "upload")

        try:
            if self.acting_user is not None and self.acting_user.role == Role.STAFF \
                    and not self.acting_user.assignments:
                raise NoAssignments(self.kind)
            try:
                candidates = self._extract(data, file_name, mime_type)
            except PortalError:
                raise
            except Exception as e:
                raise ExtractionFailed("Could not read the uploaded document", str(e)) from e
            if not candidates:
                raise NoRecordsFound()
        except PortalError as e:
            logger.warning("%s import failed: %s", self.kind, e)
            self.error = str(e)
            self.stage = Stage.UPLOAD
            raise

        users, student_data = self.store.snapshot()
        if self.kind == STUDENTS:
            self.report = classify_students(candidates, users, self.acting_user, self.current_year)
        else:
            self.report = classify_attendance(candidates, users, student_data, self.acting_user)
        self.stage = Stage.REVIEW
        return self.report

    # ── Review → Committed | Cancelled ───────────────────────────────────────

    def confirm(self) -> str:
        """Apply every eligible row in one commit and return the feedback message."""
        self._require(Stage.REVIEW)
        if not self.report.eligible:
            raise InvalidTransition("There are no records that can be imported.")

        try:
            if self.kind == STUDENTS:
                accepted = [self.store.build_imported_student(row.candidate, row.roll_number)
                            for row in self.report.eligible]
                applied = self.store.commit_students(accepted)
            else:
                applied = self.store.commit_attendance([row.candidate for row in self.report.eligible])
        except IntegrityError as e:
            # Canonical state moved since review; the operator has to start over
            logger.warning("Commit rejected: %s", e)
            self.error = str(e)
            self.report = None
            self.stage = Stage.UPLOAD
            raise

        self.stage = Stage.COMMITTED
        feedback = self.report.feedback(applied)
        logger.info(feedback)
        return feedback

    def cancel(self) -> None:
        self._require(Stage.UPLOAD, Stage.REVIEW)
        self.report = None
        self.stage = Stage.CANCELLED
