"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
import pytest
from app.core.errors import (
    BaselineConflictError,
    BaselineEngineError,
    BaselineNotFoundError,
    BaselineSelectionError,
    ObservationNotFoundError,
)
from datetime import date, datetime, timezone


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_selection_error(self):
        err = BaselineSelectionError("connection refused")
        assert err.http_status == 500
        assert err.code == "BASELINE_SELECTION_FAILED"
        assert "connection refused" in err.message
        d = err.to_dict()
        assert d["error"] == err.message
        assert "details" not in d

    def test_conflict_error(self):
        expected = datetime(2026, 9, 1, tzinfo=timezone.utc)
        found = datetime(2026, 10, 1, tzinfo=timezone.utc)
        err = BaselineConflictError("u1", expected=expected, found=found)
        assert err.http_status == 409
        assert err.code == "BASELINE_CONFLICT"
        d = err.to_dict()
        assert d["details"]["expected_updated_at"] == expected.isoformat()
        assert d["details"]["found_updated_at"] == found.isoformat()

    def test_conflict_error_with_new_row(self):
        err = BaselineConflictError("u1", expected=None, found=datetime(2026, 10, 1, tzinfo=timezone.utc))
        assert err.details["expected_updated_at"] is None

    def test_baseline_not_found(self):
        err = BaselineNotFoundError("u1")
        assert err.http_status == 404
        assert err.code == "BASELINE_NOT_FOUND"
        assert err.to_dict()["details"]["user_id"] == "u1"

    def test_observation_not_found_with_day(self):
        err = ObservationNotFoundError("u1", date(2026, 2, 20))
        assert err.http_status == 404
        assert "2026-02-20" in err.message
        assert err.details["day"] == "2026-02-20"

    def test_observation_not_found_latest(self):
        err = ObservationNotFoundError("u1")
        assert "day" not in err.details

    def test_all_subclass_base(self):
        for cls in (BaselineSelectionError, BaselineConflictError,
                    BaselineNotFoundError, ObservationNotFoundError):
            assert issubclass(cls, BaselineEngineError)

    def test_to_dict_without_details(self):
        err = BaselineEngineError("plain failure")
        d = err.to_dict()
        assert d == {"code": "INTERNAL_ERROR", "error": "plain failure"}


# ---------------------------------------------------------------------------
# Integration tests on HTTP error responses
# ---------------------------------------------------------------------------

class TestValidationErrors:
    def test_wrong_type_user_id(self, client):
        r = client.post("/baseline/recalculate", json={"user_id": 123})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert isinstance(body["details"]["errors"], list)
        fields = [e["field"] for e in body["details"]["errors"]]
        assert any("user_id" in f for f in fields)

    def test_malformed_json(self, client):
        r = client.post(
            "/baseline/recalculate",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_invalid_day_format(self, client):
        r = client.get("/baseline/u1/deviations", params={"day": "not-a-date"})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 201}, {"offset": -1}])
    def test_history_paging_bounds(self, client, params):
        r = client.get("/baseline/u1/history", params=params)
        assert r.status_code == 422


class TestNotFoundErrors:
    def test_404_has_machine_readable_code(self, client, user_id):
        r = client.get(f"/baseline/{user_id}")
        assert r.status_code == 404
        body = r.json()
        assert body["code"] == "BASELINE_NOT_FOUND"
        assert user_id in body["error"]
        assert body["details"]["user_id"] == user_id
