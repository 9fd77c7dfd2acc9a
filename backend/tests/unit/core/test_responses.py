"""
Unit Tests for the result envelope builder
"""
from biocms.core.exceptions import (
    NotFoundError,
    SelfActionForbiddenError,
    StaleCredentialsError,
    ValidationError,
)
from biocms.core.responses import error_envelope, pagination_meta, success_envelope


class TestEnvelope:

    def test_success_envelope(self):
        body = success_envelope({"biography": {"name": "Ada"}})

        assert body == {"status": "success", "data": {"biography": {"name": "Ada"}}}

    def test_success_with_pagination(self):
        body = success_envelope({"items": []}, results=0, total=21, pagination=pagination_meta(21, 3, 10))

        assert body["results"] == 0
        assert body["total"] == 21
        assert body["pagination"] == {"total": 21, "page": 3, "pages": 3, "limit": 10}

    def test_pages_rounds_up(self):
        assert pagination_meta(0, 1, 10)["pages"] == 0
        assert pagination_meta(10, 1, 10)["pages"] == 1
        assert pagination_meta(11, 1, 10)["pages"] == 2

    def test_client_errors_are_fail(self):
        body = error_envelope(404, "No biography found", code="NOT_FOUND")

        assert body == {"status": "fail", "message": "No biography found", "code": "NOT_FOUND"}

    def test_faults_are_error(self):
        assert error_envelope(500, "Something went wrong")["status"] == "error"

    def test_validation_errors_listed(self):
        body = error_envelope(400, "Invalid", errors=[{"field": "email", "message": "bad"}])

        assert body["errors"][0]["field"] == "email"


class TestExceptions:

    def test_codes_and_statuses(self):
        assert NotFoundError("Biography", "x").status_code == 404
        assert StaleCredentialsError().status_code == 401
        assert StaleCredentialsError().code == "STALE_CREDENTIALS"

        error = SelfActionForbiddenError("delete")
        assert error.status_code == 403
        assert error.code == "SELF_ACTION_FORBIDDEN"

    def test_operational_flag(self):
        assert NotFoundError("Biography", "x").is_operational

    def test_to_dict(self):
        error = ValidationError("Name is required", field="name")

        assert error.to_dict() == {
            "code": "VALIDATION_ERROR",
            "message": "Name is required",
            "details": {"field": "name"},
        }
