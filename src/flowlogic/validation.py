"""
Answer validation for a single question.

`validate_field` returns the first error message (or None). The session calls it
with the requiredness already merged from the question flag and the flow logic.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import phonenumbers
from email_validator import EmailNotValidError
from email_validator import validate_email as check_email_syntax

from flowlogic.engine.conditions import to_number, to_text
from flowlogic.logs import get_logger, log_event
from flowlogic.schemas.flow import Question, ValidationRule

logger = get_logger("validation")

URL_RE = re.compile(r"^https?://.+")

EMAIL_MAX_LENGTH = 254
EMAIL_LOCAL_MAX_LENGTH = 64


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error_message: Optional[str] = None
    normalized: Optional[str] = None
    country_code: Optional[str] = None


_VALID = ValidationResult(is_valid=True)


def _empty_result(required: bool, what: str) -> ValidationResult:
    if required:
        return ValidationResult(is_valid=False, error_message=f"{what} is required")
    return _VALID


def normalize_email(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def validate_email(value: Optional[str], required: bool = False) -> ValidationResult:
    """
    Builder-level checks first (they carry the friendlier messages), then full
    address syntax through email-validator. Deliverability is never checked.
    """
    text = str(value or "").strip()
    if not text:
        return _empty_result(required, "Email")

    invalid = ValidationResult(is_valid=False, error_message="Please enter a valid email address")
    parts = text.split("@")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return invalid
    local, domain = parts
    domain_parts = domain.split(".")
    if len(domain_parts) < 2:
        return ValidationResult(False, "Email must have a valid domain (e.g., example.com)")
    if len(domain_parts[-1]) < 2:
        return ValidationResult(False, "Email domain must have a valid TLD")
    if len(local) <= 2 and len(domain) <= 2:
        return ValidationResult(False, "Please enter a complete email address")
    if len(text) > EMAIL_MAX_LENGTH or len(local) > EMAIL_LOCAL_MAX_LENGTH:
        return ValidationResult(False, "Email address is too long")
    if ".." in text:
        return ValidationResult(False, "Email address cannot contain consecutive dots")
    if text.startswith(".") or text.endswith("."):
        return ValidationResult(False, "Email address cannot start or end with a dot")

    try:
        info = check_email_syntax(text, check_deliverability=False)
    except EmailNotValidError:
        return invalid
    return ValidationResult(is_valid=True, normalized=info.normalized)


def validate_phone(
    value: Optional[str],
    required: bool = False,
    country_code: Optional[str] = None,
) -> ValidationResult:
    """
    Parse with libphonenumber metadata. Without `country_code` the number must be
    written in international form (`+<calling code> ...`); with it, national
    numbers are read for that region and numbers from other regions are rejected.
    """
    text = str(value or "").strip()
    if not text:
        return _empty_result(required, "Phone number")

    region = country_code.upper() if country_code else None
    try:
        number = phonenumbers.parse(text, region)
    except phonenumbers.NumberParseException:
        return ValidationResult(False, "Invalid phone number format")
    if not phonenumbers.is_valid_number(number):
        return ValidationResult(False, "Please enter a valid phone number")

    number_region = phonenumbers.region_code_for_number(number)
    if region and number_region != region:
        return ValidationResult(False, f"Phone number must be from {region}")
    return ValidationResult(
        is_valid=True,
        normalized=phonenumbers.format_number(number, phonenumbers.PhoneNumberFormat.E164),
        country_code=number_region,
    )


def is_empty_answer(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def _rule_int(rule: ValidationRule) -> Optional[int]:
    n = to_number(rule.value)
    return int(n) if n is not None else None


def _measure(value: Any) -> int:
    if isinstance(value, (list, tuple, set)):
        return len(value)
    return len(to_text(value))


def _check_rule(rule: ValidationRule, question: Question, value: Any) -> Optional[str]:
    kind = str(rule.type or "").strip().lower()
    label = question.label or question.id
    if kind == "min_length":
        limit = _rule_int(rule)
        if limit is not None and _measure(value) < limit:
            return rule.message or f"{label} must be at least {limit} characters"
    elif kind == "max_length":
        limit = _rule_int(rule)
        if limit is not None and _measure(value) > limit:
            return rule.message or f"{label} must be at most {limit} characters"
    elif kind in ("min", "max"):
        bound = to_number(rule.value)
        n = to_number(value)
        if bound is None:
            return None
        if n is None:
            return rule.message or f"{label} must be a number"
        if kind == "min" and n < bound:
            return rule.message or f"{label} must be at least {to_text(bound)}"
        if kind == "max" and n > bound:
            return rule.message or f"{label} must be at most {to_text(bound)}"
    elif kind == "email":
        if not validate_email(to_text(value)).is_valid:
            return rule.message or "Please enter a valid email address"
    elif kind == "url":
        if not URL_RE.match(to_text(value)):
            return rule.message or "Please enter a valid URL"
    elif kind == "regex":
        pattern = to_text(rule.value)
        if not pattern:
            return None
        try:
            matched = re.search(pattern, to_text(value))
        except re.error as e:
            log_event(
                logger,
                "invalid_regex_rule",
                level=logging.WARNING,
                question_id=question.id,
                pattern=pattern,
                error=str(e),
            )
            return None
        if not matched:
            return rule.message or f"{label} has an invalid format"
    return None


def _option_values(question: Question) -> List[str]:
    return [o.value for o in question.options]


def _check_type(question: Question, value: Any) -> Optional[str]:
    t = question.type
    label = question.label or question.id
    if t == "email":
        return validate_email(to_text(value)).error_message
    if t == "phone":
        country = question.settings.get("country") or question.settings.get("defaultCountry")
        return validate_phone(to_text(value), country_code=str(country) if country else None).error_message
    if t == "number":
        if isinstance(value, (list, tuple, dict)) or to_number(value) is None:
            return f"{label} must be a number"
        return None
    options = _option_values(question)
    if t == "single_choice" and options:
        if to_text(value) not in options:
            return f"Please choose a valid option for {label}"
    if t == "multiple_choice" and options:
        items = value if isinstance(value, (list, tuple, set)) else [value]
        if any(to_text(v) not in options for v in items):
            return f"Please choose valid options for {label}"
    return None


def validate_field(question: Question, value: Any, required: Optional[bool] = None) -> Optional[str]:
    is_required = question.required if required is None else bool(required)
    required_rule = next((r for r in question.validation if str(r.type).strip().lower() == "required"), None)
    if is_empty_answer(value):
        if is_required or required_rule is not None:
            if required_rule is not None and required_rule.message:
                return required_rule.message
            return f"{question.label or question.id} is required"
        return None

    error = _check_type(question, value)
    if error:
        return error
    for rule in question.validation:
        error = _check_rule(rule, question, value)
        if error:
            return error
    return None


def validate_step(fields: Iterable[Tuple[Question, bool]], values: Dict[str, Any]) -> Dict[str, str]:
    """`fields` are (question, required) pairs for the visible fields of one step."""
    errors: Dict[str, str] = {}
    for question, required in fields:
        error = validate_field(question, (values or {}).get(question.id), required=required)
        if error:
            errors[question.id] = error
    return errors


__all__ = [
    "ValidationResult",
    "is_empty_answer",
    "normalize_email",
    "validate_email",
    "validate_field",
    "validate_phone",
    "validate_step",
]
