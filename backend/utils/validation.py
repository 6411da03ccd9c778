from datetime import datetime
from rollcall.errors import ValidationError
from rollcall.models import StatusEnum

DATE_FORMAT = "%Y-%m-%d"
MAX_ID = 2**63 - 1  # BIGINT upper bound; larger values overflow the driver


def parse_date(value, field="date", required=False):
    """Parse a YYYY-MM-DD string. Empty values give None unless required."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"Missing required {field}")
        return None
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid {field}, use YYYY-MM-DD")


def parse_id(value, field="id", required=False):
    """Identifiers must be positive integers; anything else is rejected, never matched."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"Missing required {field}")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}")
    try:
        parsed = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid {field}")
    if parsed <= 0 or parsed > MAX_ID:
        raise ValidationError(f"Invalid {field}")
    return parsed


def parse_status(value):
    try:
        return StatusEnum.parse(value)
    except ValueError as e:
        raise ValidationError(str(e))


def require_text(value, field):
    text = (value or "").strip() if isinstance(value, str) else value
    if not text:
        raise ValidationError(f"Missing required {field}")
    return text
