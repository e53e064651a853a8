"""Thin GitHub REST client for the recovery workflow."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from deliverygate.config import DEFAULT_GITHUB_API_URL
from deliverygate.utils.polling import poll_until

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
USER_AGENT = "deliverygate-main-recovery"
JOBS_PAGE_SIZE = 100
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class GitHubApiError(RuntimeError):
    """A GitHub request failed after exhausting retries."""

    def __init__(self, method: str, path: str, status_code: int | None, detail: str):
        status = "no response" if status_code is None else str(status_code)
        super().__init__(f"GitHub API request failed ({status}) {method} {path}\n{detail}".rstrip())
        self.status_code = status_code


def _headers(token: str | None) -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
        "User-Agent": USER_AGENT,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def parse_retry_after(value: str | None) -> float | None:
    """Seconds from a ``Retry-After`` header (delta seconds or HTTP date)."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0.0, (when - datetime.now(UTC)).total_seconds())


class GitHubClient:
    """GitHub REST calls with bounded retry on 429 and 5xx.

    Retries use exponential backoff (``backoff_seconds * 2**attempt``); a
    larger ``Retry-After`` hint wins. No single wait exceeds
    ``max_delay_seconds``.
    """

    def __init__(
        self,
        repository: str,
        token: str | None,
        *,
        base_url: str = DEFAULT_GITHUB_API_URL,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        max_delay_seconds: float = 60.0,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not repository or "/" not in repository:
            raise ValueError(f"repository must look like 'owner/name', got: {repository!r}")
        self.repository = repository
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.max_delay_seconds = max_delay_seconds
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=_headers(token),
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _delay(self, attempt: int, response: httpx.Response | None) -> float:
        delay = self.backoff_seconds * (2**attempt)
        if response is not None:
            hinted = parse_retry_after(response.headers.get("Retry-After"))
            if hinted is not None:
                delay = max(delay, hinted)
        return min(delay, self.max_delay_seconds)

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Send a request and return decoded JSON, or None for 204."""
        attempt = 0
        while True:
            response: httpx.Response | None = None
            try:
                response = self._client.request(method, path, params=params, json=json_body)
            except httpx.TransportError as exc:
                if attempt >= self.max_retries:
                    raise GitHubApiError(method, path, None, str(exc)) from exc
                logger.warning("%s %s transport error (%s); retrying", method, path, exc)
            else:
                if response.status_code not in RETRYABLE_STATUS:
                    break
                if attempt >= self.max_retries:
                    break
                logger.warning("%s %s returned %d; retrying", method, path, response.status_code)

            self._sleep(self._delay(attempt, response))
            attempt += 1

        if response.is_error:
            raise GitHubApiError(method, path, response.status_code, response.text)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def list_run_jobs(self, run_id: str | int) -> list[dict[str, Any]]:
        """All jobs of a workflow run, following pagination."""
        jobs: list[dict[str, Any]] = []
        page = 1
        while True:
            payload = self.request(
                "GET",
                f"/repos/{self.repository}/actions/runs/{run_id}/jobs",
                params={"per_page": JOBS_PAGE_SIZE, "page": page},
            )
            entries = payload.get("jobs") if isinstance(payload, dict) else None
            entries = entries if isinstance(entries, list) else []
            jobs.extend(entries)
            if len(entries) < JOBS_PAGE_SIZE:
                return jobs
            page += 1

    def get_commit(self, sha: str) -> dict[str, Any]:
        payload = self.request("GET", f"/repos/{self.repository}/commits/{sha}")
        return payload if isinstance(payload, dict) else {}

    def get_run(self, run_id: str | int) -> dict[str, Any]:
        payload = self.request("GET", f"/repos/{self.repository}/actions/runs/{run_id}")
        return payload if isinstance(payload, dict) else {}

    def rerun_failed_jobs(self, run_id: str | int) -> None:
        self.request("POST", f"/repos/{self.repository}/actions/runs/{run_id}/rerun-failed-jobs")

    def wait_for_run(
        self,
        run_id: str | int,
        *,
        interval_seconds: float = 15.0,
        timeout_seconds: float = 1800.0,
    ) -> dict[str, Any]:
        """Poll a run until its status is ``completed``."""

        def probe() -> dict[str, Any] | None:
            run = self.get_run(run_id)
            return run if run.get("status") == "completed" else None

        return poll_until(
            probe,
            interval_seconds=interval_seconds,
            timeout_seconds=timeout_seconds,
            description=f"workflow run {run_id} to complete",
            sleep=self._sleep,
        )
