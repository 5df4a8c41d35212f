"""
Input validation for the Case & Report Tracker.

Everything arriving over the API passes through here before it reaches a
store. The stores trust their input; this module is where required fields,
``DD/MM/YYYY`` dates, stage names, the preventive-measure/detention pairing
and the stage workflow are enforced.
"""

import re
from typing import Any, Dict, List, Optional, Sequence

from casetrack.models.entities import (
    CASE_STAGE_TRANSITIONS,
    CASE_STAGES,
    PREVENTIVE_MEASURES,
    REPORT_STAGE_TRANSITIONS,
    REPORT_STAGES,
    PreventiveMeasure,
)
from casetrack.utils.dates import is_valid_display_date

UNDETERMINED_CHARGES = "Charges not determined"
MIN_PASSWORD_LENGTH = 6


class ValidationError(Exception):
    """Custom exception for validation errors"""

    def __init__(self, message: str, field: Optional[str] = None, code: Optional[str] = None):
        self.message = message
        self.field = field
        self.code = code or "VALIDATION_ERROR"
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "field": self.field, "code": self.code}


class InputValidator:
    """Validation and normalisation of API payloads"""

    XSS_PATTERNS = [
        r"<script[^>]*>.*?</script>",
        r"javascript:",
        r"on\w+\s*=",
        r"<iframe[^>]*>",
        r"<object[^>]*>",
        r"<embed[^>]*>",
    ]

    EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

    def detect_xss(self, value: Any) -> bool:
        """Detect potential XSS attempts"""
        if not isinstance(value, str):
            return False
        for pattern in self.XSS_PATTERNS:
            if re.search(pattern, value, re.IGNORECASE | re.DOTALL):
                return True
        return False

    def validate_text(
        self, value: Any, field: str, required: bool = False, max_length: Optional[int] = None
    ) -> str:
        """
        Validate a free-text field

        Args:
            value: Raw value from the request
            field: Name of the field for error reporting
            required: Whether an empty value is rejected
            max_length: Maximum allowed length

        Returns:
            The stripped string ("" when absent and optional)

        Raises:
            ValidationError: If the value is missing, not a string, too long or unsafe
        """
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ValidationError(f"{field} must be a string", field, "INVALID_TYPE")

        value = value.strip()
        if required and not value:
            raise ValidationError(f"{field} is required", field, "REQUIRED")
        if max_length and len(value) > max_length:
            raise ValidationError(f"{field} too long (max {max_length} characters)", field, "TOO_LONG")
        if self.detect_xss(value):
            raise ValidationError(f"Invalid content detected in {field}", field, "SECURITY_THREAT")
        return value

    def validate_search_query(self, query: Optional[str], field: str = "q") -> str:
        if not query:
            return ""
        return self.validate_text(query, field, max_length=500)

    def validate_date(self, value: Any, field: str, required: bool = True) -> Optional[str]:
        """Validate a ``DD/MM/YYYY`` date; returns None for an empty optional date"""
        if value is None or (isinstance(value, str) and not value.strip()):
            if required:
                raise ValidationError(f"{field} is required", field, "REQUIRED")
            return None
        if not is_valid_display_date(value):
            raise ValidationError(f"{field} must be a date in DD/MM/YYYY format", field, "INVALID_FORMAT")
        return value.strip()

    def validate_choice(self, value: Any, field: str, allowed_values: Sequence[str]) -> str:
        if value not in allowed_values:
            raise ValidationError(
                f"Invalid {field} value. Allowed values: {', '.join(allowed_values)}",
                field,
                "INVALID_VALUE",
            )
        return value

    def validate_positive_int(self, value: Any, field: str) -> int:
        if isinstance(value, bool):
            raise ValidationError(f"{field} must be an integer", field, "INVALID_TYPE")
        try:
            number = int(value)
        except (ValueError, TypeError):
            raise ValidationError(f"{field} must be an integer", field, "INVALID_TYPE")
        if number < 1:
            raise ValidationError(f"{field} must be positive", field, "INVALID_VALUE")
        return number

    def validate_email(self, email: Any, field: str = "email") -> str:
        if not email:
            raise ValidationError("Email is required", field, "REQUIRED")
        if not isinstance(email, str):
            raise ValidationError("Email must be a string", field, "INVALID_TYPE")

        normalized = email.strip().lower()
        if len(normalized) > 254 or not self.EMAIL_PATTERN.match(normalized):
            raise ValidationError("Invalid email format", field, "INVALID_FORMAT")
        return normalized

    def validate_password(self, password: Any, field: str = "password") -> str:
        if not password or not isinstance(password, str):
            raise ValidationError("Password is required", field, "REQUIRED")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field, "TOO_SHORT"
            )
        return password

    def validate_defendant(self, data: Any, index: int) -> Dict[str, Any]:
        """
        Validate one defendant entry of a case form.

        A detained defendant needs a detention deadline; an at-large one never
        keeps one, whatever the client sent.
        """
        prefix = f"defendants[{index}]"
        if not isinstance(data, dict):
            raise ValidationError(f"{prefix} must be an object", prefix, "INVALID_TYPE")

        measure = data.get("preventive_measure") or PreventiveMeasure.AT_LARGE
        self.validate_choice(measure, f"{prefix}.preventive_measure", PREVENTIVE_MEASURES)

        detention_deadline = None
        if measure == PreventiveMeasure.DETAINED:
            detention_deadline = self.validate_date(data.get("detention_deadline"), f"{prefix}.detention_deadline")

        defendant = {
            "name": self.validate_text(data.get("name"), f"{prefix}.name", required=True, max_length=200),
            "charges": self.validate_text(data.get("charges"), f"{prefix}.charges", max_length=500),
            "preventive_measure": measure,
            "detention_deadline": detention_deadline,
        }
        if data.get("id"):
            defendant["id"] = str(data["id"])
        return defendant

    def validate_case_form(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a case create/edit payload.

        An empty name is generated from the first defendant
        (``"<name> - <charges>"``); empty case charges are taken from the
        first defendant.
        """
        defendants_raw = data.get("defendants") or []
        if not isinstance(defendants_raw, list):
            raise ValidationError("defendants must be a list", "defendants", "INVALID_TYPE")
        defendants = [self.validate_defendant(entry, i) for i, entry in enumerate(defendants_raw)]

        name = self.validate_text(data.get("name"), "name", max_length=300)
        charges = self.validate_text(data.get("charges"), "charges", max_length=500)
        first = defendants[0] if defendants else None
        if not name and first:
            name = f"{first['name']} - {first['charges'] or UNDETERMINED_CHARGES}"
        if not charges and first and first["charges"]:
            charges = first["charges"]

        if not name:
            raise ValidationError("name is required when no defendant is given", "name", "REQUIRED")
        if not charges:
            raise ValidationError("charges is required", "charges", "REQUIRED")

        return {
            "name": name,
            "charges": charges,
            "investigation_deadline": self.validate_date(data.get("investigation_deadline"), "investigation_deadline"),
            "prosecutor": self.validate_text(data.get("prosecutor"), "prosecutor", required=True, max_length=100),
            "notes": self.validate_text(data.get("notes"), "notes", max_length=5000),
            "defendants": defendants,
        }

    def validate_report_form(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate a report create/edit payload"""
        return {
            "name": self.validate_text(data.get("name"), "name", required=True, max_length=300),
            "charges": self.validate_text(data.get("charges"), "charges", required=True, max_length=500),
            "report_date": self.validate_date(data.get("report_date"), "report_date", required=False),
            "resolution_deadline": self.validate_date(data.get("resolution_deadline"), "resolution_deadline"),
            "prosecutor": self.validate_text(data.get("prosecutor"), "prosecutor", required=True, max_length=100),
            "notes": self.validate_text(data.get("notes"), "notes", max_length=5000),
        }

    def validate_prosecutor_form(self, data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
        validated = {}
        for field, required in (("name", True), ("title", True), ("department", False)):
            if partial and field not in data:
                continue
            validated[field] = self.validate_text(data.get(field), field, required=required, max_length=200)
        if "department" in validated and not validated["department"]:
            validated["department"] = None
        return validated

    def validate_extension(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a deadline extension request.

        ``target`` is ``investigation`` or ``detention`` (the latter needs a
        ``defendant_id``); exactly one of ``days`` and ``new_deadline`` is given.
        """
        target = self.validate_choice(data.get("target", "investigation"), "target", ["investigation", "detention"])
        defendant_id = None
        if target == "detention":
            defendant_id = self.validate_text(data.get("defendant_id"), "defendant_id", required=True)

        has_days = data.get("days") not in (None, "")
        has_deadline = bool(data.get("new_deadline"))
        if has_days == has_deadline:
            raise ValidationError("Provide either days or new_deadline", "days", "INVALID_VALUE")

        return {
            "target": target,
            "defendant_id": defendant_id,
            "days": self.validate_positive_int(data["days"], "days") if has_days else None,
            "new_deadline": self.validate_date(data.get("new_deadline"), "new_deadline") if has_deadline else None,
        }

    def validate_case_transition(self, current: str, new_stage: Any) -> str:
        self.validate_choice(new_stage, "stage", CASE_STAGES)
        return self._check_transition(current, new_stage, CASE_STAGE_TRANSITIONS)

    def validate_report_transition(self, current: str, new_stage: Any) -> str:
        self.validate_choice(new_stage, "stage", REPORT_STAGES)
        return self._check_transition(current, new_stage, REPORT_STAGE_TRANSITIONS)

    def _check_transition(self, current: str, new_stage: str, transitions: Dict[str, List[str]]) -> str:
        if new_stage not in transitions.get(current, []):
            raise ValidationError(
                f"Cannot move from {current} to {new_stage}",
                "stage",
                "INVALID_TRANSITION",
            )
        return new_stage


# Global validator instance
validator = InputValidator()
