from typing import Any

import httpx

from intake.uploads.exceptions import UploadError


def request_json(
    client: httpx.Client,
    method: str,
    url: str,
    *,
    backend: str,
    subject: str,
    operation: str = "upload",
    expect_body: bool = True,
    **kwargs: Any,
) -> dict[str, Any]:
    """Send one REST call and return its JSON object body.

    Transport failures, non-2xx answers and undecodable bodies all surface
    as ``UploadError`` naming ``subject``.
    """
    try:
        response = client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise UploadError(backend, subject, f"Transport error: {exc}", operation=operation) from exc
    if not response.is_success:
        raise UploadError(
            backend,
            subject,
            response.text,
            http_status=response.status_code,
            operation=operation,
        )
    if not expect_body:
        return {}
    return decode_json_object(response, backend=backend, subject=subject, operation=operation)


def decode_json_object(
    response: httpx.Response,
    *,
    backend: str,
    subject: str,
    operation: str = "upload",
) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise UploadError(
            backend,
            subject,
            f"Response is not JSON: {response.text[:200]}",
            http_status=response.status_code,
            operation=operation,
        ) from exc
    if not isinstance(body, dict):
        raise UploadError(
            backend,
            subject,
            "Response is not a JSON object",
            http_status=response.status_code,
            operation=operation,
        )
    return body
