import pytest
from unittest.mock import MagicMock, patch

from flask import request
from google.api_core.exceptions import ServiceUnavailable

from services.service_bigquery_insert.main import INSERT_ID_HEADER, insert_bigquery_row
from shared_libs.common.bigquery_sink import BigQuerySink
from shared_libs.config.all_config import BigQueryConfig

RECORD = {
    "filename": "docs/a.txt",
    "bucket": "uploads",
    "size_bytes": 26,
    "upload_date": "2024-05-01T12:30:00Z",
    "total_words": 6,
    "top_10_words": [{"word": "the", "count": 3}],
}


@pytest.fixture
def bq_client():
    client = MagicMock()
    client.insert_rows_json.return_value = []
    sink = BigQuerySink(BigQueryConfig(project_id="p", dataset_id="d", table_id="t"), client=client)
    with patch("services.service_bigquery_insert.main.sink", sink):
        yield client


def call(flask_app, body, headers=None):
    with flask_app.test_request_context("/", method="POST", json=body, headers=headers or {}):
        return insert_bigquery_row(request)


def test_inserts_record(flask_app, bq_client):
    response, status = call(flask_app, RECORD, headers={INSERT_ID_HEADER: "run-key"})

    assert status == 200
    assert response.get_json() == {"status": "inserted", "table": "p.d.t"}
    table_id, rows = bq_client.insert_rows_json.call_args.args
    assert rows[0]["upload_date"] == "2024-05-01T12:30:00+00:00"
    assert bq_client.insert_rows_json.call_args.kwargs["row_ids"] == ["run-key"]


def test_invalid_record_returns_422(flask_app, bq_client):
    response, status = call(flask_app, {**RECORD, "total_words": -3})

    assert status == 422
    bq_client.insert_rows_json.assert_not_called()


def test_row_errors_return_422(flask_app, bq_client):
    bq_client.insert_rows_json.return_value = [{"index": 0, "errors": [{"reason": "invalid"}]}]

    response, status = call(flask_app, RECORD)

    assert status == 422
    assert response.get_json()["error"] == "Insert failed"


def test_api_errors_return_502(flask_app, bq_client):
    bq_client.insert_rows_json.side_effect = ServiceUnavailable("try later")

    response, status = call(flask_app, RECORD)

    assert status == 502
