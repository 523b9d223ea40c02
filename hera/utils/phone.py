import re

PHONE_PATTERN = re.compile(r"^\(\d{3}\) \d{3}-\d{4}$")


def normalize_phone(value: str) -> str:
    """Format a US phone number as ``(XXX) XXX-XXXX``.

    Numbers already in that shape are returned as-is. Otherwise the digits are
    extracted (a leading country code 1 is dropped) and the first ten are
    formatted; anything with fewer than ten digits comes back as bare digits.
    """
    value = (value or "").strip()
    if PHONE_PATTERN.match(value):
        return value

    digits = re.sub(r"\D", "", value)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) < 10:
        return digits
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:10]}"
