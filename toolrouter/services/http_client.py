from __future__ import annotations

"""Lightweight HTTP client util with retry.

Uses stdlib urllib; GET and POST JSON with limited retries. Client errors (4xx)
are not retried. Responses carry headers so callers can read provider quota
counters.
"""
import http.client
import json
import time
import urllib.parse
import urllib.request
import urllib.error
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


class HttpError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


@dataclass
class JsonResponse:
    status: int
    data: Any
    headers: Dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lowered:
                return v
        return None


def _send(req: urllib.request.Request, timeout: float) -> JsonResponse:
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310
            if resp.status >= 400:
                raise HttpError(f"HTTP {resp.status} for {req.full_url}", resp.status)
            body = resp.read()
            headers = {k: v for k, v in resp.headers.items()}
            data = json.loads(body.decode("utf-8")) if body else None
            return JsonResponse(status=resp.status, data=data, headers=headers)
    except urllib.error.HTTPError as e:
        raise HttpError(f"HTTP {e.code} {e.reason}", e.code) from e


def _request_with_retries(
    req: urllib.request.Request, timeout: float, retries: int, backoff: float
) -> JsonResponse:
    last_err: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            return _send(req, timeout)
        except HttpError as e:
            last_err = e
            if e.status is not None and 400 <= e.status < 500:
                raise
        except (
            OSError,
            http.client.HTTPException,
            ValueError,
        ) as e:  # OSError covers URLError, timeouts, resets; ValueError for JSON decode
            last_err = e
        if attempt == retries:
            break
        time.sleep(backoff * (2**attempt))
    status = last_err.status if isinstance(last_err, HttpError) else None
    raise HttpError(f"Request to {_redact(req.full_url)} failed: {last_err}", status)


def _redact(url: str) -> str:
    return url.split("?", 1)[0]


def get_json(
    url: str,
    *,
    params: Optional[Mapping[str, str]] = None,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = 10.0,
    retries: int = 2,
    backoff: float = 0.5,
) -> JsonResponse:
    if params:
        url = f"{url}?{urllib.parse.urlencode(params)}"
    req = urllib.request.Request(
        url, headers={"Accept": "application/json", **(headers or {})}, method="GET"
    )
    return _request_with_retries(req, timeout, retries, backoff)


def post_json(
    url: str,
    payload: Any,
    *,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = 5.0,
    retries: int = 0,
    backoff: float = 0.5,
) -> JsonResponse:
    req = urllib.request.Request(
        url,
        data=json.dumps(payload, default=str).encode("utf-8"),
        headers={"Content-Type": "application/json", **(headers or {})},
        method="POST",
    )
    return _request_with_retries(req, timeout, retries, backoff)
