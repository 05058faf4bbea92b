from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from shared_libs.common.schemas import AnalysisRequest, FileAnalysisRecord, WordCountItem


def make_record(**overrides):
    data = {
        "filename": "reports/summary.txt",
        "bucket": "uploads",
        "size_bytes": 42,
        "upload_date": "2024-05-01T12:30:00Z",
        "total_words": 8,
        "top_10_words": [{"word": "the", "count": 3}],
    }
    data.update(overrides)
    return FileAnalysisRecord(**data)


class TestAnalysisRequest:
    def test_valid_request(self):
        request = AnalysisRequest(bucket_name="uploads", file_path="a.txt")
        assert request.bucket_name == "uploads"

    @pytest.mark.parametrize("payload", [
        {"file_path": "a.txt"},
        {"bucket_name": "uploads"},
        {"bucket_name": "", "file_path": "a.txt"},
        {"bucket_name": "uploads", "file_path": ""},
    ])
    def test_invalid_request(self, payload):
        with pytest.raises(ValidationError):
            AnalysisRequest(**payload)


class TestFileAnalysisRecord:
    def test_upload_date_normalized_to_iso(self):
        assert make_record().upload_date == "2024-05-01T12:30:00+00:00"

    def test_upload_date_accepts_datetime(self):
        record = make_record(upload_date=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc))
        assert record.upload_date == "2024-05-01T12:30:00+00:00"

    def test_upload_date_accepts_rfc_2822(self):
        record = make_record(upload_date="Wed, 01 May 2024 12:30:00 GMT")
        assert record.upload_date.startswith("2024-05-01T12:30:00")

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_upload_date(self, value):
        assert make_record(upload_date=value).upload_date is None

    def test_unparseable_upload_date_rejected(self):
        with pytest.raises(ValidationError):
            make_record(upload_date="not a date")

    def test_negative_counts_rejected(self):
        with pytest.raises(ValidationError):
            make_record(total_words=-1)
        with pytest.raises(ValidationError):
            make_record(size_bytes=-1)

    def test_dump_keeps_word_entries(self):
        dumped = make_record().model_dump()
        assert dumped["top_10_words"] == [{"word": "the", "count": 3}]


def test_word_count_item_requires_positive_count():
    with pytest.raises(ValidationError):
        WordCountItem(word="cat", count=0)


@pytest.mark.parametrize("model", [AnalysisRequest, FileAnalysisRecord])
def test_schema_example_is_published_and_valid(model):
    example = model.model_json_schema()["example"]
    assert model.model_validate(example).model_dump() == example
