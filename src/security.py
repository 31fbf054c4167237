"""Security configuration and validation forms."""

from typing import Union

from flask_wtf import FlaskForm
from wtforms import (
    StringField, FloatField, DateField, BooleanField, TextAreaField, ValidationError
)
from wtforms.validators import (
    DataRequired, InputRequired, Length, NumberRange,
    Optional as OptionalValidator, Regexp
)
from markupsafe import escape


class SecurityConfig:
    """Security configuration constants."""

    # Rate limiting
    RATE_LIMIT_PER_MINUTE = "60/minute"
    RATE_LIMIT_PER_HOUR = "1000/hour"
    RATE_LIMIT_WRITE_PER_MINUTE = "20/minute"

    # CORS settings
    CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_HEADERS = ["Content-Type", "Authorization", "X-User-Id"]

    # Security headers
    SECURITY_HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=()",
    }

    # API only serves JSON, nothing to load
    CSP_POLICY = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"


def sanitize_input(value: Union[str, None]) -> Union[str, None]:
    """Sanitize user input to prevent XSS attacks."""
    if value is None:
        return None
    if isinstance(value, str):
        return str(escape(value))
    return value


def validate_time_of_day(form, field):
    """Custom validator for HH:MM times."""
    if not field.data:
        return
    parts = str(field.data).split(":")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except (IndexError, ValueError):
        raise ValidationError("Time must be in HH:MM format")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValidationError("Time must be a valid time of day")


class RefuelForm(FlaskForm):
    """Form for refuel record submission."""
    date = DateField(
        "Date",
        validators=[DataRequired()],
        format="%Y-%m-%d",
        description="Day of the refuel"
    )
    time = StringField(
        "Time",
        validators=[
            OptionalValidator(),
            Regexp(r'^\d{1,2}:\d{2}$', message="Time must be in HH:MM format"),
            validate_time_of_day,
        ],
        description="Time of day of the refuel"
    )
    odometer = FloatField(
        "Odometer",
        validators=[OptionalValidator(), NumberRange(min=0, max=9999999.9)],
        description="Odometer reading at the pump"
    )
    volume = FloatField(
        "Volume",
        validators=[InputRequired(), NumberRange(min=0, max=10000)],
        description="Litres dispensed"
    )
    amount = FloatField(
        "Amount",
        validators=[InputRequired(), NumberRange(min=0, max=1000000)],
        description="Total cost"
    )
    price_per_unit = FloatField(
        "Price Per Unit",
        validators=[OptionalValidator(), NumberRange(min=0, max=10000)],
        description="Unit price shown at the pump"
    )
    fuel_grade = StringField(
        "Fuel Grade",
        validators=[OptionalValidator(), Length(max=20)],
        description="Fuel grade, e.g. 95"
    )
    remark = TextAreaField(
        "Remark",
        validators=[OptionalValidator(), Length(max=500)],
        description="Optional remark"
    )
    is_full_tank = BooleanField("Full Tank")
    warning_light = BooleanField("Warning Light")
    has_previous_record = BooleanField("Has Previous Record")
