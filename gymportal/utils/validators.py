"""Form field checks shared by the auth and admin handlers.

Every check raises :class:`ValidationError` on failure, which the view turns
into a flashed message before any store or identity call is made.
"""


class ValidationError(Exception):
    def __init__(self, message, category='warning'):
        self.message = message
        self.category = category
        super().__init__(message)


def clean(value):
    """Form value stripped of surrounding whitespace ('' for None)."""
    return (value or '').strip()


def require(*values, message='Please fill in all fields', category='warning'):
    if not all(values):
        raise ValidationError(message, category)


def min_length(value, length, message, category='warning'):
    if len(value or '') < length:
        raise ValidationError(message, category)


def looks_like_email(value):
    """Deliberately loose: anything containing an '@'."""
    return '@' in (value or '')


def require_email(value, message='Please enter a valid email address', category='warning'):
    if not looks_like_email(value):
        raise ValidationError(message, category)


def to_number(raw, default=0):
    """Parse a numeric form field; blank or unparseable input yields ``default``.

    Whole numbers come back as ``int`` so they are stored and exported
    without a trailing ``.0``.
    """
    raw = clean(raw)
    if not raw:
        return default
    try:
        number = float(raw)
    except ValueError:
        return default
    if number != number or number in (float('inf'), float('-inf')):
        return default
    return int(number) if number.is_integer() else number


def require_positive(amount, message='Amount must be greater than 0', category='error'):
    if amount <= 0:
        raise ValidationError(message, category)
