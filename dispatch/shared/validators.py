"""Shared validation utilities

Every check returns a structured result. Invalid input is an expected outcome,
so nothing in this module raises for it.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Optional, Union

from ..config import MAX_FORFEIT
from ..models import MISSION_TYPES, USER_ROLES

# Failure reasons
INVALID_RANGE = "InvalidRange"
PAST_START = "PastStart"
NOT_POSITIVE = "NotPositive"
ABOVE_CEILING = "AboveCeiling"
NOT_A_NUMBER = "NotANumber"

# Availability times are compared on an arbitrary fixed calendar date
REFERENCE_DATE = date(2000, 1, 1)

PASSWORD_MIN_LENGTH = 8
PASSWORD_SPECIAL_CHARS = r"[!@#$%^&*(),.?\":{}|<>]"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\+]?[0-9\s\-\(\)]{10,15}$")


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, reason: str, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error, reason=reason)


@dataclass(frozen=True)
class ConflictResult:
    has_conflict: bool
    conflicting: Any = None


@dataclass(frozen=True)
class PasswordStrength:
    is_valid: bool
    strength: int
    errors: list[str] = field(default_factory=list)


def _parse_datetime(value: Union[str, datetime]) -> datetime:
    """Parse to an aware UTC datetime; naive values are taken as UTC"""
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_time(value: Union[str, time]) -> time:
    if isinstance(value, time):
        return value
    return time.fromisoformat(str(value))


def validate_mission_dates(
    start: Union[str, datetime],
    end: Union[str, datetime],
    now: Optional[datetime] = None,
) -> ValidationResult:
    """
    Check a mission window before it is persisted.

    The ordering check runs first, so a reversed window in the past reports
    ``InvalidRange`` rather than ``PastStart``.
    """
    try:
        start_dt = _parse_datetime(start)
        end_dt = _parse_datetime(end)
        current = _parse_datetime(now) if now is not None else datetime.now(timezone.utc)
    except (TypeError, ValueError):
        return ValidationResult.fail(INVALID_RANGE, "Les dates de la mission sont invalides")

    if start_dt >= end_dt:
        return ValidationResult.fail(
            INVALID_RANGE, "La date de fin doit être postérieure à la date de début"
        )

    if start_dt < current:
        return ValidationResult.fail(
            PAST_START, "La date de début ne peut pas être dans le passé"
        )

    return ValidationResult.ok()


def validate_availability_times(
    start: Union[str, time], end: Union[str, time]
) -> ValidationResult:
    """Same ordering rule as missions, restricted to time-of-day values"""
    try:
        start_dt = datetime.combine(REFERENCE_DATE, _parse_time(start))
        end_dt = datetime.combine(REFERENCE_DATE, _parse_time(end))
    except (TypeError, ValueError):
        return ValidationResult.fail(INVALID_RANGE, "Les heures de disponibilité sont invalides")

    if start_dt >= end_dt:
        return ValidationResult.fail(
            INVALID_RANGE, "L'heure de fin doit être postérieure à l'heure de début"
        )
    return ValidationResult.ok()


def _range_bounds(existing: Any) -> Optional[tuple[datetime, datetime]]:
    """Bounds of a booked range, or None when the range is unusable"""
    try:
        if isinstance(existing, Mapping):
            return _parse_datetime(existing["date_start"]), _parse_datetime(existing["date_end"])
        return _parse_datetime(existing.date_start), _parse_datetime(existing.date_end)
    except (AttributeError, KeyError, TypeError, ValueError):
        return None


def check_planning_conflict(
    new_start: Union[str, datetime],
    new_end: Union[str, datetime],
    existing_ranges: Iterable[Any],
) -> ConflictResult:
    """
    Return the first existing range overlapping ``[new_start, new_end)``.

    Ranges are scanned in iteration order and the scan stops at the first
    overlap, so the result is the first conflict encountered, not the
    earliest or the tightest one. Ranges without usable bounds are skipped,
    and an unparseable candidate window conflicts with nothing.
    """
    try:
        start = _parse_datetime(new_start)
        end = _parse_datetime(new_end)
    except (TypeError, ValueError):
        return ConflictResult(has_conflict=False)

    for existing in existing_ranges or ():
        bounds = _range_bounds(existing)
        if bounds is None:
            continue
        existing_start, existing_end = bounds
        if start < existing_end and end > existing_start:
            return ConflictResult(has_conflict=True, conflicting=existing)

    return ConflictResult(has_conflict=False)


def validate_email(email: Optional[str]) -> bool:
    """Validate email format"""
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def validate_phone(phone: Optional[str]) -> bool:
    """Validate phone format (digits, spaces, dashes, parentheses, optional leading +)"""
    return bool(phone) and PHONE_PATTERN.match(phone) is not None


def validate_password(password: str) -> PasswordStrength:
    """
    Score a password from 0 to 5.

    Each unmet rule lowers the score by one and is listed in ``errors``.
    """
    password = password or ""
    errors = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Au moins {PASSWORD_MIN_LENGTH} caractères")
    if not re.search(r"[A-Z]", password):
        errors.append("Au moins une majuscule")
    if not re.search(r"[a-z]", password):
        errors.append("Au moins une minuscule")
    if not re.search(r"\d", password):
        errors.append("Au moins un chiffre")
    if not re.search(PASSWORD_SPECIAL_CHARS, password):
        errors.append("Au moins un caractère spécial")

    return PasswordStrength(
        is_valid=not errors,
        strength=max(0, 5 - len(errors)),
        errors=errors,
    )


def validate_amount(amount: Union[int, float], ceiling: float = MAX_FORFEIT) -> ValidationResult:
    """Validate a monetary amount against the configured ceiling"""
    if amount is None:
        return ValidationResult.fail(NOT_POSITIVE, "Le montant doit être supérieur à 0")
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        return ValidationResult.fail(NOT_A_NUMBER, "Le montant doit être un nombre")
    # NaN is the only value not equal to itself
    if amount != amount or amount <= 0:
        return ValidationResult.fail(NOT_POSITIVE, "Le montant doit être supérieur à 0")
    if amount > ceiling:
        return ValidationResult.fail(
            ABOVE_CEILING, f"Le montant ne peut pas dépasser {ceiling:,.0f}€".replace(",", " ")
        )
    return ValidationResult.ok()


def validate_mission_fields(data: Mapping[str, Any]) -> list[str]:
    """Field-level checks for a mission record; returns the list of errors"""
    errors = []

    title = str(data.get("title") or "").strip()
    if not title:
        errors.append("Le titre est requis")
    elif len(title) > 100:
        errors.append("Le titre ne peut pas dépasser 100 caractères")

    location = str(data.get("location") or "").strip()
    if not location:
        errors.append("Le lieu est requis")
    elif len(location) > 200:
        errors.append("Le lieu ne peut pas dépasser 200 caractères")

    if data.get("type") not in MISSION_TYPES:
        errors.append("Type de mission invalide")

    if not data.get("date_start") or not data.get("date_end"):
        errors.append("Les dates de début et de fin sont requises")

    amount = validate_amount(data.get("forfeit"))
    if not amount.is_valid:
        errors.append(amount.error)

    return errors


def validate_user_fields(data: Mapping[str, Any]) -> list[str]:
    """Field-level checks for a user profile; returns the list of errors"""
    errors = []

    name = str(data.get("name") or "").strip()
    if not name:
        errors.append("Le nom est requis")
    elif len(name) > 50:
        errors.append("Le nom ne peut pas dépasser 50 caractères")

    if data.get("role") not in USER_ROLES:
        errors.append("Rôle invalide")

    phone = data.get("phone")
    if phone and not validate_phone(phone):
        errors.append("Numéro de téléphone invalide")

    email = data.get("email")
    if email and not validate_email(email):
        errors.append("Adresse email invalide")

    return errors
