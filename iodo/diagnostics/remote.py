"""
Client for the remote analysis service.

Sends the snapshot to ``POST <origin>/api/analyze`` once per run.  Any
transport error, non-2xx status, or malformed body raises RemoteUnavailable;
there are no retries.
"""

from typing import Optional

import requests

from ..utils.logger import get_logger
from .models import AnalysisResult, TelemetrySnapshot

ANALYZE_PATH = "/api/analyze"


class RemoteUnavailable(Exception):
    """The remote analysis path could not produce a result."""

    def __init__(self, reason: str, status: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.status = status


class RemoteAnalysisClient:
    """
    Submits telemetry snapshots for analysis.

    Args:
        origin:  Base URL of the analysis service.
        timeout: Seconds to wait for the connection and the response.
        session: Optional requests session owned by the caller.  Without
                 one, each request opens and closes its own session.
    """

    def __init__(
        self,
        origin: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.origin = origin.rstrip("/")
        self.timeout = timeout
        self.session = session

    @property
    def url(self) -> str:
        return self.origin + ANALYZE_PATH

    def _post(self, snapshot: TelemetrySnapshot) -> requests.Response:
        kwargs = dict(
            json=snapshot.to_dict(),
            headers={"Content-Type": "application/json"},
            timeout=self.timeout,
        )
        if self.session is not None:
            return self.session.post(self.url, **kwargs)
        with requests.Session() as session:
            return session.post(self.url, **kwargs)

    def analyze(self, snapshot: TelemetrySnapshot) -> AnalysisResult:
        """Submit a snapshot and parse the returned analysis.

        Raises:
            RemoteUnavailable: on transport, status, or parse failure.
        """
        logger = get_logger()
        logger.debug(f"Submitting snapshot to {self.url}")

        try:
            response = self._post(snapshot)
        except requests.RequestException as e:
            raise RemoteUnavailable(f"Analysis request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise RemoteUnavailable(
                f"Analysis server returned {response.status_code}",
                status=response.status_code,
            )

        try:
            result = AnalysisResult.from_dict(response.json())
        except ValueError as e:
            # requests' JSONDecodeError is a ValueError as well
            raise RemoteUnavailable(
                f"Invalid analysis response: {e}", status=response.status_code
            ) from e

        logger.debug(f"Remote analysis returned {len(result.faults)} finding(s)")
        return result
