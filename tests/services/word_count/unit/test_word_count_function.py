import pytest
from unittest.mock import patch

from flask import request
from google.api_core.exceptions import Forbidden

from services.service_word_count.main import count_words


@pytest.fixture
def storage(in_memory_storage):
    with patch("shared_libs.common.http_function.get_storage", return_value=in_memory_storage):
        yield in_memory_storage


def call(flask_app, method="POST", **kwargs):
    with flask_app.test_request_context("/", method=method, **kwargs):
        return count_words(request)


def test_counts_words(flask_app, storage):
    storage.add("docs/a.txt", "The cat, the hat. THE END!")

    response, status = call(flask_app, json={"bucket_name": "unit-test", "file_path": "docs/a.txt"})

    assert status == 200
    assert response.get_json() == {"total_words": 6}


def test_empty_file(flask_app, storage):
    storage.add("docs/empty.txt", b"")

    response, status = call(flask_app, json={"bucket_name": "unit-test", "file_path": "docs/empty.txt"})

    assert status == 200
    assert response.get_json() == {"total_words": 0}


def test_missing_object_returns_404(flask_app, storage):
    response, status = call(flask_app, json={"bucket_name": "unit-test", "file_path": "nope.txt"})

    assert status == 404
    assert response.get_json()["error"] == "Not found"


def test_forbidden_object_returns_403(flask_app, storage):
    with patch.object(storage, "download_document", side_effect=Forbidden("denied")):
        response, status = call(flask_app, json={"bucket_name": "unit-test", "file_path": "a.txt"})

    assert status == 403


def test_missing_field_returns_422(flask_app, storage):
    response, status = call(flask_app, json={"bucket_name": "unit-test"})

    assert status == 422
    assert response.get_json()["error"] == "Validation failed"


def test_non_json_body_returns_400(flask_app, storage):
    response, status = call(flask_app, data="not json", content_type="text/plain")

    assert status == 400


def test_get_returns_405(flask_app, storage):
    response, status = call(flask_app, method="GET")

    assert status == 405


def test_options_preflight(flask_app, storage):
    body, status, headers = call(flask_app, method="OPTIONS")

    assert status == 204
    assert headers["Access-Control-Allow-Methods"] == "POST"
