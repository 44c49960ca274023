"""Tests for the ResultRecord schema."""

import time

import pytest
from pydantic import ValidationError as PydanticValidationError

from cwa_quicktest.domain.enums import ResultStatus
from cwa_quicktest.domain.ports import ValidationError
from cwa_quicktest.domain.quicktest_data import create_test_record
from cwa_quicktest.domain.quicktest_result import ResultRecord, create_result_record

TEST_ID = "80232838046d2a65ab1b7a1be3dd1250ba9c91c969476c093bc34001ef460af8"


@pytest.fixture
def result_data():
    return {"id": TEST_ID, "result": 6, "sc": 1618386548}


class TestCreateResultRecord:
    """Test suite for result validation."""

    def test_valid_result(self, result_data):
        """Test that a valid mapping is accepted."""
        record = create_result_record(result_data)
        assert record.id == TEST_ID
        assert record.result is ResultStatus.NEGATIVE
        assert record.sc == 1618386548

    @pytest.mark.parametrize("status", [ResultStatus.NEGATIVE, ResultStatus.POSITIVE, ResultStatus.INVALID, 7])
    def test_all_status_codes(self, result_data, status):
        """Test that every status code is accepted."""
        result_data["result"] = status
        assert create_result_record(result_data).result == status

    @pytest.mark.parametrize("prop", ["id", "result", "sc"])
    def test_missing_property(self, result_data, prop):
        """Test that each property is required."""
        del result_data[prop]
        with pytest.raises(ValidationError, match=f"^Missing property '{prop}'$") as exc_info:
            create_result_record(result_data)
        assert exc_info.value.field == prop

    def test_properties_checked_in_order(self):
        """Test that id is reported before result and sc."""
        with pytest.raises(ValidationError, match="'id'"):
            create_result_record({"foo": "bar"})

    @pytest.mark.parametrize("value", ["", "   ", 42])
    def test_invalid_id(self, result_data, value):
        """Test that id must be a non-empty string."""
        result_data["id"] = value
        with pytest.raises(ValidationError, match="Property 'id' must not be empty"):
            create_result_record(result_data)

    @pytest.mark.parametrize("value", [0, 5, 9, "6", True])
    def test_invalid_result(self, result_data, value):
        """Test that only 6, 7 and 8 are accepted."""
        result_data["result"] = value
        with pytest.raises(ValidationError, match=r"possible values: 6,7,8"):
            create_result_record(result_data)

    @pytest.mark.parametrize("value", [0, -5, 1.5, "1618386548", True])
    def test_invalid_sc(self, result_data, value):
        """Test that sc must be a positive integer."""
        result_data["sc"] = value
        with pytest.raises(ValidationError, match="Property 'sc' must be a unix timestamp integer"):
            create_result_record(result_data)

    @pytest.mark.parametrize("value", [{}, None, [("id", TEST_ID)]])
    def test_not_a_mapping(self, value):
        """Test that empty or non-mapping input is rejected."""
        with pytest.raises(ValidationError, match="mapping"):
            create_result_record(value)


class TestResultRecord:
    """Test suite for ResultRecord behaviour."""

    def test_to_payload(self, result_data):
        """Test wire representation with plain integers and fixed key order."""
        payload = create_result_record(result_data).to_payload()
        assert payload == {"id": TEST_ID, "result": 6, "sc": 1618386548}
        assert list(payload) == ["id", "result", "sc"]
        assert type(payload["result"]) is int

    def test_for_test_uses_record_hash(self, anonymous_data):
        """Test that the id of a result is the hash of the test record."""
        record = create_test_record(anonymous_data)
        result = ResultRecord.for_test(record, ResultStatus.POSITIVE, sc=1618390000)
        assert result.id == record.get_hash()
        assert result.result is ResultStatus.POSITIVE
        assert result.sc == 1618390000

    def test_for_test_defaults_to_now(self, anonymous_data):
        """Test that sc defaults to the current time."""
        before = int(time.time())
        result = ResultRecord.for_test(create_test_record(anonymous_data), 8)
        assert before <= result.sc <= int(time.time())

    def test_immutable(self, result_data):
        """Test that results are immutable."""
        record = create_result_record(result_data)
        with pytest.raises(PydanticValidationError):
            record.result = ResultStatus.POSITIVE
