# fintrack_api/validation.py

import re
from datetime import datetime

from flask import jsonify

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
URL_RE = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)


# ---------------- Helpers ----------------
def parse_iso_date(value):
    """Parse an ISO8601 date or datetime string into a date (None if invalid)."""
    if value is None or isinstance(value, bool):
        return None
    s = str(value).strip()
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
    except ValueError:
        return None

def parse_number(value):
    """Accept ints, floats and numeric strings; reject booleans and NaN."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number

def validation_failed(errors):
    return jsonify({
        "success": False,
        "message": "Validation failed",
        "errors": errors
    }), 400


class RequestValidator:
    """
    Collects field-level errors for a JSON body. Every check stores the cleaned
    value in ``clean`` when the field is present and valid; absent optional
    fields are skipped so the same rules serve create and partial update.
    """

    def __init__(self, data):
        self.data = data if isinstance(data, dict) else {}
        self.errors = []
        self.clean = {}

    @property
    def ok(self):
        return not self.errors

    def _error(self, field, message):
        self.errors.append({"field": field, "message": message})

    def _missing(self, field):
        return field not in self.data or self.data[field] is None

    def text(self, field, message, required=True, min_len=1, max_len=None):
        if self._missing(field):
            if required:
                self._error(field, message)
            return
        value = self.data[field]
        if not isinstance(value, str):
            self._error(field, message)
            return
        value = value.strip()
        if len(value) < min_len or (max_len is not None and len(value) > max_len):
            self._error(field, message)
            return
        self.clean[field] = value

    def number(self, field, message, required=True, minimum=None, exclusive=False):
        if self._missing(field):
            if required:
                self._error(field, message)
            return
        value = parse_number(self.data[field])
        if value is None:
            self._error(field, message)
            return
        if minimum is not None and (value <= minimum if exclusive else value < minimum):
            self._error(field, message)
            return
        self.clean[field] = value

    def iso_date(self, field, message, required=True):
        if self._missing(field):
            if required:
                self._error(field, message)
            return
        value = parse_iso_date(self.data[field])
        if value is None:
            self._error(field, message)
            return
        self.clean[field] = value.isoformat()

    def choice(self, field, choices, message, required=True):
        if self._missing(field):
            if required:
                self._error(field, message)
            return
        value = self.data[field]
        if value not in choices:
            self._error(field, message)
            return
        self.clean[field] = value

    def boolean(self, field, message, required=False):
        if self._missing(field):
            if required:
                self._error(field, message)
            return
        value = self.data[field]
        if not isinstance(value, bool):
            self._error(field, message)
            return
        self.clean[field] = value

    def email(self, field, message):
        value = self.data.get(field)
        if not isinstance(value, str) or not EMAIL_RE.match(value.strip()):
            self._error(field, message)
            return
        self.clean[field] = value.strip().lower()

    def url(self, field, message, required=False):
        if self._missing(field):
            if required:
                self._error(field, message)
            return
        value = self.data[field]
        if not isinstance(value, str) or not URL_RE.match(value.strip()):
            self._error(field, message)
            return
        self.clean[field] = value.strip()
