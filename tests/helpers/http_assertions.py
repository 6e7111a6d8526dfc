"""HTTP response assertion helpers."""

from httpx import Response


def assert_error_response(
    response: Response,
    status_code: int,
    detail_contains: str | None = None,
) -> None:
    """
    Assert response is an error rendered by the domain exception handler.

    Args:
        response: HTTP response object
        status_code: Expected HTTP status code
        detail_contains: Optional substring expected in the detail message
    """
    assert response.status_code == status_code, response.text
    body = response.json()
    assert "detail" in body

    if detail_contains is not None:
        assert detail_contains in body["detail"]
