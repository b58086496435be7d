"""Tests for the download API Lambda handler."""

import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.download_api.handler import lambda_handler
from src.media_extractor.config import ExtractorConfig
from src.media_extractor.exceptions import InvalidInputError, UnsupportedPlatformError
from src.media_extractor.models import MediaEntry, MediaKind


class MockLambdaContext:
    """Mock Lambda context for testing."""

    def __init__(self):
        self.function_name = "test-function"
        self.function_version = "1"
        self.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789012:function:test-function"
        self.memory_limit_in_mb = 128
        self.aws_request_id = "test-request-id"
        self.log_group_name = "/aws/lambda/test-function"
        self.log_stream_name = "2021/01/01/[$LATEST]test-stream"


def download_event(body, **overrides):
    event = {
        "httpMethod": "POST",
        "path": "/download",
        "headers": {"Content-Type": "application/json"},
        "body": body if isinstance(body, str) or body is None else json.dumps(body),
    }
    event.update(overrides)
    return event


class TestDownloadHandler:
    """Test cases for the download API Lambda function."""

    @pytest.fixture
    def extractor(self):
        """Patch MediaExtractor with an async context manager double."""
        instance = MagicMock()
        instance.__aenter__.return_value = instance
        instance.extract = AsyncMock(return_value=[])

        with patch("src.download_api.handler.MediaExtractor", return_value=instance), patch(
            "src.download_api.handler.get_config", return_value=ExtractorConfig()
        ):
            yield instance

    def test_download_success(self, extractor):
        extractor.extract.return_value = [
            MediaEntry(kind=MediaKind.VIDEO, source_url="https://x/a", quality="360p", title="T"),
            MediaEntry(kind=MediaKind.IMAGE, source_url="https://x/thumb.jpg", title="T"),
        ]

        response = lambda_handler(
            download_event({"url": "https://youtu.be/dQw4w9WgXcQ"}), MockLambdaContext()
        )

        assert response["statusCode"] == 200
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"
        body = json.loads(response["body"])
        assert body["success"] is True
        assert [item["type"] for item in body["media"]] == ["video", "image"]
        assert body["media"][0]["url"] == "https://x/a"
        assert body["media"][0]["quality"] == "360p"
        assert body["media"][0]["filename"].startswith("video_")
        assert body["media"][0]["filename"].endswith("_0.mp4")
        assert body["media"][1]["filename"].endswith("_1.jpg")
        extractor.extract.assert_awaited_once_with("https://youtu.be/dQw4w9WgXcQ")

    def test_download_empty_result(self, extractor):
        response = lambda_handler(
            download_event({"url": "https://www.instagram.com/p/ABC123/"}), MockLambdaContext()
        )

        assert response["statusCode"] == 200
        assert json.loads(response["body"]) == {"success": True, "media": []}

    def test_missing_url(self, extractor):
        extractor.extract.side_effect = InvalidInputError("URL is required")

        response = lambda_handler(download_event({}), MockLambdaContext())

        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {"error": "URL is required"}
        extractor.extract.assert_awaited_once_with(None)

    def test_malformed_body_treated_as_missing_url(self, extractor):
        extractor.extract.side_effect = InvalidInputError("URL is required")

        response = lambda_handler(download_event("{not json"), MockLambdaContext())

        assert response["statusCode"] == 400
        extractor.extract.assert_awaited_once_with(None)

    def test_base64_body(self, extractor):
        body = base64.b64encode(json.dumps({"url": "https://fb.watch/abc/"}).encode()).decode()

        lambda_handler(download_event(body, isBase64Encoded=True), MockLambdaContext())

        extractor.extract.assert_awaited_once_with("https://fb.watch/abc/")

    def test_unsupported_platform(self, extractor):
        extractor.extract.side_effect = UnsupportedPlatformError("https://example.com")

        response = lambda_handler(
            download_event({"url": "https://example.com"}), MockLambdaContext()
        )

        assert response["statusCode"] == 400
        assert json.loads(response["body"]) == {"error": "Unsupported platform"}

    def test_unexpected_fault(self, extractor):
        extractor.extract.side_effect = RuntimeError("browser crashed")

        response = lambda_handler(
            download_event({"url": "https://www.instagram.com/p/ABC123/"}), MockLambdaContext()
        )

        assert response["statusCode"] == 500
        assert json.loads(response["body"]) == {"error": "browser crashed"}
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"

    def test_health(self):
        response = lambda_handler({"httpMethod": "GET", "path": "/health"}, MockLambdaContext())

        assert response["statusCode"] == 200
        assert json.loads(response["body"]) == {"status": "ok"}

    def test_health_http_api_payload(self):
        event = {
            "rawPath": "/health/",
            "requestContext": {"http": {"method": "GET", "path": "/health/"}},
        }

        response = lambda_handler(event, MockLambdaContext())

        assert response["statusCode"] == 200

    def test_options_preflight(self):
        response = lambda_handler({"httpMethod": "OPTIONS", "path": "/download"}, MockLambdaContext())

        assert response["statusCode"] == 204
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"
        assert "POST" in response["headers"]["Access-Control-Allow-Methods"]

    def test_unknown_route(self):
        response = lambda_handler({"httpMethod": "GET", "path": "/nope"}, MockLambdaContext())

        assert response["statusCode"] == 404
        assert json.loads(response["body"]) == {"error": "Not found"}

    def test_trace_context_detached_after_request(self, extractor):
        from opentelemetry import trace

        event = download_event(
            {"url": "https://youtu.be/dQw4w9WgXcQ"},
            headers={"TraceParent": "00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01"},
        )

        lambda_handler(event, MockLambdaContext())

        assert trace.get_current_span().get_span_context().is_valid is False
