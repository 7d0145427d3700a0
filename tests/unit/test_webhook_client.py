import itertools
import json
from collections.abc import Callable, Iterator

import httpx
import pytest

from intake.config.settings import Settings
from intake.submission.exceptions import ResponseError, TransportError
from intake.submission.models import PayloadDocument, SubmissionPayload
from intake.submission.webhook_client import WebhookClient

URL = "https://hook.example/intake"


def _payload() -> SubmissionPayload:
    return SubmissionPayload(
        documents=(
            PayloadDocument(
                item_id=1,
                filename="passport.pdf",
                file_type="application/pdf",
                doc_type="mainId",
                role="owner",
                file_id="01ABC",
                web_url="https://web/1",
                download_url="https://dl/1",
                file_size=42,
                last_modified="2026-03-01T10:00:00Z",
            ),
        ),
        document_type="incorporation",
        timestamp="2026-03-01T10:00:00+00:00",
        session_folder="intake-sessions/20260301-100000_dana",
        user_email="dana@example.com",
        api_key="key-1234567890",
        wire_prefix="oneDrive",
    )


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
    clock: Callable[[], float] | None = None,
) -> WebhookClient:
    return WebhookClient(
        url=URL,
        api_key="key-1234567890",
        timeout_ms=1000,
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        clock=clock or itertools.repeat(0.0).__next__,
    )


class TestWebhookClientPost:
    def test_sends_payload_in_single_element_array(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"body": "{}"}])

        _client(handler).post(_payload())

        body = json.loads(seen[0].content)
        assert isinstance(body, list) and len(body) == 1
        assert body[0]["documents"][0]["oneDriveFileId"] == "01ABC"
        assert body[0]["oneDriveSessionFolder"] == "intake-sessions/20260301-100000_dana"
        assert body[0]["totalFiles"] == 1

    def test_sets_three_auth_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        _client(handler).post(_payload())

        headers = seen[0].headers
        assert headers["Content-Type"] == "application/json"
        assert headers["Authorization"] == "Bearer key-1234567890"
        assert headers["x-api-key"] == "key-1234567890"
        assert headers["x-make-apikey"] == "key-1234567890"

    def test_retries_once_without_auth_headers_on_network_failure(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if len(seen) == 1:
                raise httpx.ConnectError("CORS preflight rejected", request=request)
            return httpx.Response(200, text="ok")

        response = _client(handler).post(_payload())

        assert response.status_code == 200
        assert len(seen) == 2
        retry = seen[1]
        assert retry.headers["Content-Type"] == "application/json"
        assert "Authorization" not in retry.headers
        assert "x-api-key" not in retry.headers
        assert "x-make-apikey" not in retry.headers
        assert retry.content == seen[0].content

    def test_second_network_failure_raises_transport_error(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(TransportError, match="after retry"):
            _client(handler).post(_payload())
        assert len(seen) == 2

    def test_timeout_is_not_retried(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportError, match="timed out"):
            _client(handler).post(_payload())
        assert len(seen) == 1

    def test_non_2xx_raises_response_error_verbatim(self) -> None:
        client = _client(lambda request: httpx.Response(401, text="Invalid API key"))

        with pytest.raises(ResponseError) as exc_info:
            client.post(_payload())

        assert exc_info.value.status == 401
        assert exc_info.value.status_text == "Unauthorized"
        assert exc_info.value.body == "Invalid API key"
        assert str(exc_info.value) == "HTTP 401: Unauthorized - Invalid API key"

    def test_http_error_status_is_not_retried(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(500, text="scenario error")

        with pytest.raises(ResponseError):
            _client(handler).post(_payload())
        assert len(seen) == 1


class TestWebhookClientFromSettings:
    def test_uses_configured_url_and_key(self) -> None:
        settings = Settings(webhook_url=URL, webhook_api_key="abc", webhook_timeout_ms=2500)
        client = WebhookClient.from_settings(settings)
        assert client._url == URL
        assert client._api_key == "abc"
        assert client._client.timeout.read == 2.5


class _DripStream(httpx.SyncByteStream):
    def __iter__(self) -> Iterator[bytes]:
        yield b'[{"body": '
        yield b'"{\\"SessionId\\":'
        yield b'\\"sess-42\\"}"}]'


class TestWebhookClientDeadline:
    def test_response_within_deadline_is_read_whole(self) -> None:
        client = _client(lambda request: httpx.Response(200, stream=_DripStream()))
        response = client.post(_payload())
        assert json.loads(response.text) == [{"body": '{"SessionId":"sess-42"}'}]

    def test_slow_body_past_total_deadline_times_out(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, stream=_DripStream())

        clock = itertools.chain([0.0, 0.2], itertools.repeat(5.0)).__next__

        with pytest.raises(TransportError, match="timed out"):
            _client(handler, clock=clock).post(_payload())
        assert len(seen) == 1

    def test_close_closes_http_client(self) -> None:
        client = _client(lambda request: httpx.Response(200))
        client.close()
        assert client._client.is_closed
