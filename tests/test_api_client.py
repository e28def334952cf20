"""
Tests for the API client.
"""

import pytest
from unittest.mock import patch, MagicMock

from video_analyzer.api.client import ApiClient


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


@pytest.fixture
def client():
    return ApiClient("http://testserver")


def test_analyze(client, test_video_url):
    with patch("video_analyzer.api.client.requests.post", return_value=_response(payload={"id": "job-1"})) as mock_post:
        result = client.analyze(test_video_url, force_regenerate=True)

    assert result == {"id": "job-1"}
    args, kwargs = mock_post.call_args
    assert args[0] == "http://testserver/api/v1/videos/analyze"
    assert kwargs["json"] == {"url": test_video_url, "force_regenerate": True}


def test_get_analysis_not_found(client):
    with patch("video_analyzer.api.client.requests.get", return_value=_response(404)):
        assert client.get_analysis("missing") is None


def test_wait_for_analysis_polls_until_terminal(client):
    responses = [
        _response(payload={"id": "job-1", "status": "processing"}),
        _response(payload={"id": "job-1", "status": "completed", "segments": []}),
    ]
    with patch("video_analyzer.api.client.requests.get", side_effect=responses) as mock_get, \
            patch("video_analyzer.api.client.time.sleep") as mock_sleep:
        result = client.wait_for_analysis("job-1", timeout=60, interval=1)

    assert result["status"] == "completed"
    assert mock_get.call_count == 2
    mock_sleep.assert_called_once_with(1)


def test_wait_for_analysis_missing_job(client):
    with patch("video_analyzer.api.client.requests.get", return_value=_response(404)):
        assert client.wait_for_analysis("missing", timeout=5) == {"error": "Analysis not found"}


def test_cache_calls(client):
    with patch("video_analyzer.api.client.requests.get", return_value=_response(payload={"count": 0})) as mock_get:
        assert client.cache_stats() == {"count": 0}
        client.cache_status("V3TUEeB0kW0")
        client.list_analyses()

    urls = [call.args[0] for call in mock_get.call_args_list]
    assert urls == [
        "http://testserver/api/v1/cache/stats",
        "http://testserver/api/v1/cache/V3TUEeB0kW0",
        "http://testserver/api/v1/videos",
    ]
