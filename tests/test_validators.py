from datetime import datetime, timedelta, timezone

from dispatch.shared.validators import (
    ABOVE_CEILING,
    INVALID_RANGE,
    NOT_A_NUMBER,
    NOT_POSITIVE,
    PAST_START,
    check_planning_conflict,
    validate_amount,
    validate_availability_times,
    validate_email,
    validate_mission_dates,
    validate_mission_fields,
    validate_password,
    validate_phone,
    validate_user_fields,
)

NOW = datetime(2026, 6, 1, 8, 0, tzinfo=timezone.utc)


def at(hour: int, day: int = 2) -> datetime:
    return datetime(2026, 6, day, hour, 0, tzinfo=timezone.utc)


class TestMissionDates:
    def test_future_window_is_valid(self):
        result = validate_mission_dates(at(10), at(12), now=NOW)
        assert result.is_valid
        assert result.error is None

    def test_end_before_start_is_invalid_range(self):
        result = validate_mission_dates(at(12), at(10), now=NOW)
        assert not result.is_valid
        assert result.reason == INVALID_RANGE
        assert "postérieure" in result.error

    def test_equal_bounds_are_invalid_range(self):
        result = validate_mission_dates(at(10), at(10), now=NOW)
        assert result.reason == INVALID_RANGE

    def test_start_in_the_past(self):
        result = validate_mission_dates(NOW - timedelta(hours=1), NOW + timedelta(hours=1), now=NOW)
        assert not result.is_valid
        assert result.reason == PAST_START

    def test_ordering_is_checked_before_past_start(self):
        start = NOW - timedelta(hours=1)
        result = validate_mission_dates(start, start - timedelta(hours=1), now=NOW)
        assert result.reason == INVALID_RANGE

    def test_accepts_iso_strings(self):
        result = validate_mission_dates("2026-06-02T10:00:00Z", "2026-06-02T12:00:00Z", now=NOW)
        assert result.is_valid

    def test_unparseable_dates(self):
        result = validate_mission_dates("demain", "après-demain", now=NOW)
        assert result.reason == INVALID_RANGE


class TestAvailabilityTimes:
    def test_valid_range(self):
        assert validate_availability_times("09:00", "17:30").is_valid

    def test_reversed_range(self):
        result = validate_availability_times("18:00", "09:00")
        assert result.reason == INVALID_RANGE

    def test_equal_times(self):
        assert not validate_availability_times("09:00", "09:00").is_valid


class TestPlanningConflict:
    def test_overlap_is_reported(self):
        existing = [{"id": "a", "date_start": at(10), "date_end": at(12)}]
        result = check_planning_conflict(at(11), at(13), existing)
        assert result.has_conflict
        assert result.conflicting["id"] == "a"

    def test_touching_ranges_do_not_conflict(self):
        existing = [{"id": "a", "date_start": at(10), "date_end": at(12)}]
        assert not check_planning_conflict(at(12), at(14), existing).has_conflict
        assert not check_planning_conflict(at(8), at(10), existing).has_conflict

    def test_first_match_wins(self):
        existing = [
            {"id": "late", "date_start": at(13), "date_end": at(15)},
            {"id": "early", "date_start": at(9), "date_end": at(11)},
        ]
        result = check_planning_conflict(at(10), at(14), existing)
        assert result.conflicting["id"] == "late"

    def test_empty_list(self):
        result = check_planning_conflict(at(10), at(12), [])
        assert not result.has_conflict
        assert result.conflicting is None

    def test_accepts_objects(self):
        class Booked:
            date_start = at(10)
            date_end = at(12)

        booked = Booked()
        assert check_planning_conflict(at(9), at(11), [booked]).conflicting is booked


class TestPassword:
    def test_strong_password(self):
        result = validate_password("Abc123!@")
        assert result.is_valid
        assert result.strength == 5
        assert result.errors == []

    def test_weak_password_lists_every_missing_rule(self):
        result = validate_password("abc")
        assert not result.is_valid
        assert result.strength == 1
        assert len(result.errors) == 4
        assert "Au moins 8 caractères" in result.errors

    def test_empty_password(self):
        result = validate_password("")
        assert result.strength == 0
        assert len(result.errors) == 5


class TestAmounts:
    def test_positive_amount(self):
        assert validate_amount(150).is_valid

    def test_zero_and_negative(self):
        assert validate_amount(0).reason == NOT_POSITIVE
        assert validate_amount(-5).reason == NOT_POSITIVE

    def test_above_ceiling(self):
        result = validate_amount(10001, ceiling=10000)
        assert result.reason == ABOVE_CEILING
        assert "10 000" in result.error

    def test_ceiling_itself_is_allowed(self):
        assert validate_amount(10000, ceiling=10000).is_valid


class TestFieldChecks:
    def test_email_and_phone(self):
        assert validate_email("jean@example.com")
        assert not validate_email("jean@")
        assert not validate_email(None)
        assert validate_phone("+33 6 12 34 56 78")
        assert not validate_phone("12")

    def test_mission_fields(self):
        errors = validate_mission_fields(
            {"title": " ", "location": "Lyon", "type": "Karaoké", "forfeit": 0}
        )
        assert "Le titre est requis" in errors
        assert "Type de mission invalide" in errors
        assert "Les dates de début et de fin sont requises" in errors
        assert "Le montant doit être supérieur à 0" in errors

    def test_user_fields(self):
        assert validate_user_fields({"name": "Jean", "role": "technicien"}) == []
        errors = validate_user_fields({"name": "", "role": "client", "email": "nope"})
        assert errors == ["Le nom est requis", "Rôle invalide", "Adresse email invalide"]


class TestMalformedInput:
    def test_mixed_awareness_is_compared_as_utc(self):
        naive_end = datetime(2026, 6, 2, 12, 0)
        assert validate_mission_dates(at(10), naive_end, now=NOW).is_valid
        result = validate_mission_dates(at(13), naive_end, now=NOW)
        assert result.reason == INVALID_RANGE

    def test_naive_now_against_aware_window(self):
        result = validate_mission_dates(at(10), at(12), now=datetime(2026, 6, 3))
        assert result.reason == PAST_START

    def test_non_date_values(self):
        assert validate_mission_dates(None, 42, now=NOW).reason == INVALID_RANGE

    def test_conflict_with_mixed_awareness(self):
        existing = [
            {"id": "a", "date_start": datetime(2026, 6, 2, 10), "date_end": datetime(2026, 6, 2, 12)}
        ]
        assert check_planning_conflict(at(11), at(13), existing).conflicting["id"] == "a"

    def test_ranges_without_bounds_are_skipped(self):
        existing = [
            {"id": "broken"},
            {"id": "garbled", "date_start": "demain", "date_end": at(12)},
            {"id": "a", "date_start": at(10), "date_end": at(12)},
        ]
        assert check_planning_conflict(at(11), at(13), existing).conflicting["id"] == "a"

    def test_unparseable_candidate_has_no_conflict(self):
        existing = [{"id": "a", "date_start": at(10), "date_end": at(12)}]
        result = check_planning_conflict("bientôt", at(13), existing)
        assert not result.has_conflict

    def test_non_numeric_amount(self):
        assert validate_amount("150").reason == NOT_A_NUMBER
        assert validate_amount(True).reason == NOT_A_NUMBER
        assert validate_amount(None).reason == NOT_POSITIVE
        assert validate_amount(float("nan")).reason == NOT_POSITIVE

    def test_mission_fields_with_odd_types(self):
        errors = validate_mission_fields(
            {"title": 12, "location": "Lyon", "type": "DJ", "forfeit": "beaucoup",
             "date_start": at(10), "date_end": at(12)}
        )
        assert errors == ["Le montant doit être un nombre"]
