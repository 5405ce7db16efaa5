import pytest

from flowlogic.schemas.flow import Question
from flowlogic.validation import validate_email, validate_field, validate_phone, validate_step


def _q(**kw):
    base = {"id": "f", "label": "Field"}
    base.update(kw)
    return Question.model_validate(base)


def test_required_empty_values():
    q = _q(required=True)
    for empty in (None, "", "   ", []):
        assert validate_field(q, empty) == "Field is required"
    assert validate_field(_q(), None) is None


def test_required_override_and_custom_message():
    assert validate_field(_q(), "", required=True) == "Field is required"
    q = _q(validation=[{"type": "required", "message": "Tell us"}])
    assert validate_field(q, None) == "Tell us"


@pytest.mark.parametrize(
    "email,ok",
    [
        ("ann@example.com", True),
        ("first.last+tag@sub.example.org", True),
        ("用户@例子.广告", True),
        ("ann@example", False),
        ("ann@example.c", False),
        ("a@b.co", True),
        ("ann..lee@example.com", False),
        ("no-at-sign", False),
        ("ann smith@example.com", False),
        ("ann@-example.com", False),
    ],
)
def test_validate_email(email, ok):
    assert validate_email(email).is_valid is ok


def test_validate_email_messages_and_normalized_form():
    assert validate_email("ann@example.c").error_message == "Email domain must have a valid TLD"
    assert validate_email("ann@-example.com").error_message == "Please enter a valid email address"
    assert validate_email("Ann@Example.COM").normalized == "Ann@example.com"


def test_validate_email_required():
    assert validate_email("", required=True).error_message == "Email is required"
    assert validate_email("").is_valid is True


@pytest.mark.parametrize(
    "phone,country,ok",
    [
        ("+1 650 253 0000", None, True),
        ("+44 20 7031 3000", None, True),
        ("(650) 253-0000", "US", True),
        ("(650) 253-0000", None, False),
        ("+1 555", None, False),
        ("12345", None, False),
        ("+44 20 7031 3000", "US", False),
    ],
)
def test_validate_phone(phone, country, ok):
    assert validate_phone(phone, country_code=country).is_valid is ok


def test_validate_phone_details():
    result = validate_phone("(650) 253-0000", country_code="us")
    assert result.normalized == "+16502530000"
    assert result.country_code == "US"
    assert validate_phone("12345").error_message == "Invalid phone number format"
    assert validate_phone("+1 555").error_message == "Please enter a valid phone number"
    assert validate_phone("+44 20 7031 3000", country_code="US").error_message == "Phone number must be from US"
    assert validate_phone(" ", required=True).error_message == "Phone number is required"


def test_phone_question_uses_country_setting():
    q = _q(type="phone", settings={"country": "US"})
    assert validate_field(q, "650-253-0000") is None
    assert validate_field(_q(type="phone"), "650-253-0000") == "Invalid phone number format"


def test_type_checks():
    assert validate_field(_q(type="email"), "nope") == "Please enter a valid email address"
    assert validate_field(_q(type="number"), "12.5") is None
    assert validate_field(_q(type="number"), "twelve") == "Field must be a number"
    choice = _q(type="single_choice", options=["a", "b"])
    assert validate_field(choice, "a") is None
    assert validate_field(choice, "z") == "Please choose a valid option for Field"
    multi = _q(type="multiple_choice", options=[{"value": "a"}, {"value": "b"}])
    assert validate_field(multi, ["a", "b"]) is None
    assert validate_field(multi, ["a", "c"]) == "Please choose valid options for Field"


def test_length_and_range_rules():
    q = _q(validation=[{"type": "min_length", "value": 3}, {"type": "max_length", "value": 5}])
    assert validate_field(q, "ab") == "Field must be at least 3 characters"
    assert validate_field(q, "abcdef") == "Field must be at most 5 characters"
    assert validate_field(q, "abcd") is None

    n = _q(type="number", validation=[{"type": "min", "value": 1}, {"type": "max", "value": 10, "message": "Too many"}])
    assert validate_field(n, 0) == "Field must be at least 1"
    assert validate_field(n, 11) == "Too many"
    assert validate_field(n, 5) is None


def test_legacy_validation_object():
    q = _q(type="number", validation={"min": 2, "max": 4})
    assert validate_field(q, 1) == "Field must be at least 2"


def test_url_and_regex_rules():
    url = _q(validation=[{"type": "url"}])
    assert validate_field(url, "https://example.com") is None
    assert validate_field(url, "example.com") == "Please enter a valid URL"

    code = _q(validation=[{"type": "regex", "value": "^[A-Z]{3}$", "message": "Three capitals"}])
    assert validate_field(code, "ABC") is None
    assert validate_field(code, "abc") == "Three capitals"


def test_invalid_regex_is_ignored():
    q = _q(validation=[{"type": "regex", "value": "(["}])
    assert validate_field(q, "anything") is None


def test_validate_step_collects_per_field():
    a = _q(id="a", label="A", required=True)
    b = _q(id="b", label="B")
    c = _q(id="c", label="C", type="email")
    errors = validate_step([(a, True), (b, True), (c, False)], {"b": "ok", "c": "bad"})
    assert errors == {"a": "A is required", "c": "Please enter a valid email address"}
