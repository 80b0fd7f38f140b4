import google.generativeai as genai
import json
import logging
import math
import re
from PIL import Image
import io

from config import Settings, load_settings
from document_reader import DocumentContent
from errors import ExtractionFailed
from models import MONTHS, MalformedRecord, ParsedAttendanceRecord, ParsedStudent

logger = logging.getLogger(__name__)


STUDENT_PROMPT = """You are an intelligent data extraction assistant.
Your task is to analyze the following text content and extract a list of students.
Each student record should contain their full name, roll number (if available), department, academic year, section, email, and phone number.
Also extract fee information if available (totalFees, paidFees).
Crucially, determine if a student is a 'lateral entry' student, which typically means they are joining directly into their 2nd year. Set 'isLateralEntry' to true if they are.
If roll number, fees, email, phone, section, or lateral entry status are not mentioned, omit those fields.
The system will generate a standardized roll number if one is not provided, so focus on accuracy for other fields.
Years must be a single digit (1, 2, 3, or 4).
Return the data as a valid JSON array. If the text is empty or has no student data, return an empty array.

Here is the text content:
---
{content}
---"""

ATTENDANCE_PROMPT = """You are an intelligent data extraction assistant for an academic portal.
Analyze the provided document (text or an image) and extract monthly attendance records for students.
Each record must contain a student's roll number, the month, the year, the number of days they were present, and the total number of working days for that month.
- Roll numbers can be complex (e.g., 23KP1A6601). Extract them fully and do NOT modify them.
- The month must be a full English month name (e.g., "January", "February").
- The year must be a four-digit number. If the year is not specified, assume {current_year}.
- 'present' and 'total' must be whole numbers.
The data might be in a table, a list, or paragraphs. For images, perform OCR to read the text.
Return a valid JSON array. If the document contains no valid attendance data, return an empty array."""

NOTICE_PROMPT = """You are drafting a notice for a college notice board.
Department: {department}
Author: {author}
Write a short, formal notice about the following topic. Return a JSON object with a concise "title" and the notice "content" (plain text, at most 150 words).

Topic: {topic}"""

STUDENT_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "name":           {"type": "STRING",  "description": "Student's full name"},
            "rollNumber":     {"type": "STRING",  "description": "Student's unique roll number (if present in the text)"},
            "department":     {"type": "STRING",  "description": "Student's department (e.g., ECE, EVT)"},
            "year":           {"type": "STRING",  "description": "Academic year as a single digit string (e.g., '1', '2')"},
            "section":        {"type": "STRING",  "description": "Class section (e.g., A, B)"},
            "isLateralEntry": {"type": "BOOLEAN", "description": "True if the student is a lateral entry candidate"},
            "email":          {"type": "STRING",  "description": "Student's email address"},
            "phone":          {"type": "STRING",  "description": "Student's phone number"},
            "totalFees":      {"type": "NUMBER",  "description": "Student's total fees for the year"},
            "paidFees":       {"type": "NUMBER",  "description": "Amount of fees the student has paid"},
        },
        "required": ["name", "department", "year"],
    },
}

ATTENDANCE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "rollNumber": {"type": "STRING", "description": "Student's unique roll number"},
            "month":      {"type": "STRING", "description": "Full name of the month (e.g., 'January')"},
            "year":       {"type": "NUMBER", "description": "Four-digit year (e.g., 2024)"},
            "present":    {"type": "NUMBER", "description": "Days the student was present"},
            "total":      {"type": "NUMBER", "description": "Total working days in the month"},
        },
        "required": ["rollNumber", "month", "year", "present", "total"],
    },
}

NOTICE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title":   {"type": "STRING"},
        "content": {"type": "STRING"},
    },
    "required": ["title", "content"],
}

YEAR_PATTERN = re.compile(r"^[1-4]$")
_MONTH_LOOKUP = {m.lower(): m for m in MONTHS}


# ══════════════════════════════════════════════════════════════════════════════
# Model call
# ══════════════════════════════════════════════════════════════════════════════

def _call_model(model_name: str, parts: list, settings: Settings, schema: dict = None) -> str:
    """Send one request to Gemini and return the raw response text ("" when the model gave none)."""
    if not settings.gemini_api_key:
        raise ExtractionFailed("Gemini API key is not configured", "set GEMINI_API_KEY")

    genai.configure(api_key=settings.gemini_api_key)
    config = genai.types.GenerationConfig(temperature=0.0)
    if schema is not None:
        config = genai.types.GenerationConfig(
            temperature=0.0,
            response_mime_type="application/json",
            response_schema=schema,
        )
    model = genai.GenerativeModel(model_name)

    try:
        response = model.generate_content(
            parts,
            generation_config=config,
            request_options={"timeout": settings.extraction_timeout},
        )
    except Exception as e:
        logger.error("Gemini call to %s failed: %s", model_name, e)
        raise ExtractionFailed("The AI service request failed", str(e)) from e

    try:
        return (response.text or "").strip()
    except ValueError:
        # Blocked or empty candidate list: response.text raises instead of returning ""
        logger.warning("Gemini %s returned no text candidates", model_name)
        return ""


def _parse_json_response(text: str):
    """Robustly parse JSON from a Gemini response, tolerating markdown fences."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    for pattern in [r'```json\s*([\s\S]*?)\s*```', r'```\s*([\s\S]*?)\s*```', r'(\[[\s\S]*\])', r'(\{[\s\S]*\})']:
        match = re.search(pattern, text, re.DOTALL)
        if match:
            try:
                return json.loads(match.group(1))
            except json.JSONDecodeError:
                continue

    raise ExtractionFailed("Could not parse JSON from the AI response", text[:200])


def _parse_rows(text: str) -> list:
    if not text:
        return []
    data = _parse_json_response(text)
    if not isinstance(data, list):
        raise ExtractionFailed("Expected a JSON array from the AI", type(data).__name__)
    return data


# ══════════════════════════════════════════════════════════════════════════════
# Row validation
# ══════════════════════════════════════════════════════════════════════════════

def _opt_str(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _req_str(row: dict, key: str) -> str:
    value = _opt_str(row.get(key))
    if value is None:
        raise ValueError(f"missing {key}")
    return value


def _number(value, key: str, integer: bool = False):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"{key} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be a number") from None
    if not math.isfinite(number):
        raise ValueError(f"{key} must be a finite number")
    if number < 0:
        raise ValueError(f"{key} must not be negative")
    if integer:
        if not number.is_integer():
            raise ValueError(f"{key} must be a whole number")
        return int(number)
    return number


def validate_student_row(index: int, row):
    """Coerce one model row into a ParsedStudent, or a MalformedRecord explaining why not."""
    if not isinstance(row, dict):
        return MalformedRecord(index, row, "row is not an object")
    try:
        year = _req_str(row, "year")
        if not YEAR_PATTERN.match(year):
            raise ValueError(f"year must be 1-4, got {year!r}")
        lateral = row.get("isLateralEntry")
        if isinstance(lateral, str):
            lateral = lateral.strip().lower() in {"true", "yes", "y", "1"}
        return ParsedStudent(
            name=_req_str(row, "name"),
            department=_req_str(row, "department").upper(),
            year=year,
            roll_number=_opt_str(row.get("rollNumber")),
            section=_opt_str(row.get("section")),
            is_lateral_entry=bool(lateral),
            total_fees=_number(row.get("totalFees"), "totalFees"),
            paid_fees=_number(row.get("paidFees"), "paidFees"),
            email=_opt_str(row.get("email")),
            phone=_opt_str(row.get("phone")),
        )
    except ValueError as e:
        return MalformedRecord(index, row, str(e))


def validate_attendance_row(index: int, row):
    """Coerce one model row into a ParsedAttendanceRecord, or a MalformedRecord."""
    if not isinstance(row, dict):
        return MalformedRecord(index, row, "row is not an object")
    try:
        month = _MONTH_LOOKUP.get(_req_str(row, "month").lower())
        if month is None:
            raise ValueError(f"unknown month {row.get('month')!r}")
        year = _number(row.get("year"), "year", integer=True)
        if year is None or not 1000 <= year <= 9999:
            raise ValueError("year must be a four-digit number")
        present = _number(row.get("present"), "present", integer=True)
        total = _number(row.get("total"), "total", integer=True)
        if present is None or total is None:
            raise ValueError("present and total are required")
        if present > total:
            raise ValueError(f"present ({present}) exceeds total ({total})")
        return ParsedAttendanceRecord(
            roll_number=_req_str(row, "rollNumber"),
            month=month,
            year=year,
            present=present,
            total=total,
        )
    except ValueError as e:
        return MalformedRecord(index, row, str(e))


# ══════════════════════════════════════════════════════════════════════════════
# Public API
# ══════════════════════════════════════════════════════════════════════════════

def extract_students(document_text: str, settings: Settings = None) -> list:
    """Extract candidate students (ParsedStudent | MalformedRecord, in model order) from roster text."""
    settings = settings or load_settings()
    text = _call_model(
        settings.student_model,
        [STUDENT_PROMPT.format(content=document_text)],
        settings,
        STUDENT_SCHEMA,
    )
    rows = [validate_student_row(i, row) for i, row in enumerate(_parse_rows(text))]
    logger.info("Student extraction returned %d row(s)", len(rows))
    return rows


def extract_attendance(document: DocumentContent, current_year: int, settings: Settings = None) -> list:
    """Extract monthly attendance rows from document text or an image."""
    settings = settings or load_settings()
    parts = [ATTENDANCE_PROMPT.format(current_year=current_year)]
    if document.is_image:
        parts.append(Image.open(io.BytesIO(document.image_bytes)))
    else:
        parts.append(f"\n\nHere is the text content from the document:\n---\n{document.text}\n---")

    text = _call_model(settings.attendance_model, parts, settings, ATTENDANCE_SCHEMA)
    rows = [validate_attendance_row(i, row) for i, row in enumerate(_parse_rows(text))]
    logger.info("Attendance extraction returned %d row(s)", len(rows))
    return rows


def generate_chat_response(prompt: str, thinking_mode: bool = False, settings: Settings = None) -> str:
    """Free-form answer for the portal assistant. Failures come back as a readable message."""
    settings = settings or load_settings()
    model_name = settings.thinking_model if thinking_mode else settings.chat_model
    try:
        return _call_model(model_name, [prompt], settings) or "The AI returned an empty response."
    except ExtractionFailed as e:
        return (f"An error occurred while contacting the AI: {e}. "
                "Please check your API key and network connection.")


def draft_notice(topic: str, department: str, author: str, settings: Settings = None) -> dict:
    """Draft a notice-board entry; returns {"title", "content"}."""
    settings = settings or load_settings()
    prompt = NOTICE_PROMPT.format(topic=topic.strip(), department=department, author=author)
    text = _call_model(settings.chat_model, [prompt], settings, NOTICE_SCHEMA)
    if not text:
        raise ExtractionFailed("The AI returned an empty notice draft")
    data = _parse_json_response(text)
    if not isinstance(data, dict):
        raise ExtractionFailed("Expected a JSON object for the notice draft", type(data).__name__)
    title, content = _opt_str(data.get("title")), _opt_str(data.get("content"))
    if not title or not content:
        raise ExtractionFailed("The AI notice draft is missing a title or content")
    return {"title": title, "content": content}
