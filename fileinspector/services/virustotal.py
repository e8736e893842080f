"""VirusTotalClient — file reputation lookups against the VirusTotal v3 API.

Files are identified by their SHA-256 digest; file contents are never
uploaded.  Each lookup returns a :class:`FileReport` holding the per-engine
detection map from the file's most recent analysis.

Error mapping
-------------
``404``
    The file is unknown to VirusTotal: a report with ``present=False`` is
    returned (not yet analysed, which is *not* the same as clean).
``429``
    Request quota exhausted: :class:`RateLimitExceeded` is raised.
Other non-2xx / network errors
    :class:`VirusTotalError` is raised.

Every error increments the Prometheus counter
``fileinspector_virustotal_errors_total``.

Usage::

    from fileinspector.services.virustotal import VirusTotalClient

    with VirusTotalClient(api_key="...") as client:
        report = client.get_file_report(Path("/srv/uploads/invoice.pdf"))
        print(report.positives, report.total)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx
from prometheus_client import Counter

from fileinspector.core.hashing import file_digest

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Prometheus metrics
# ---------------------------------------------------------------------------

#: Labels: ``error_type`` ("rate_limit" | "http_error" | "network_error" | "bad_response").
virustotal_errors_total = Counter(
    "fileinspector_virustotal_errors_total",
    "Total number of failed VirusTotal report lookups",
    ["error_type"],
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_BASE_URL = "https://www.virustotal.com/api/v3"

#: Engine categories that count as a positive detection.
_DETECTED_CATEGORIES = frozenset({"malicious", "suspicious"})

#: Engine categories meaning the engine did not take part in the analysis.
_NON_PARTICIPATING_CATEGORIES = frozenset(
    {"type-unsupported", "timeout", "confirmed-timeout", "failure"}
)


class VirusTotalError(Exception):
    """Raised when a VirusTotal lookup fails."""


class RateLimitExceeded(VirusTotalError):
    """Raised when VirusTotal rejects a request because the quota is spent."""


@dataclass(frozen=True)
class FileReport:
    """Reputation report for a single file.

    Attributes:
        resource: Local path the report was requested for.
        sha256: Digest used to look the file up.
        present: ``False`` when VirusTotal has no analysis for the file.
        detections: Engine name → ``True`` if that engine flagged the file.
            Only engines that took part in the analysis are included.
    """

    resource: Path
    sha256: str
    present: bool
    detections: dict[str, bool] = field(default_factory=dict)

    @property
    def positives(self) -> int:
        return sum(1 for detected in self.detections.values() if detected)

    @property
    def total(self) -> int:
        return len(self.detections)

    @property
    def detection_ratio(self) -> float:
        return self.positives / self.total if self.total else 0.0


def parse_file_report(resource: Path, sha256: str, payload: dict[str, Any]) -> FileReport:
    """Build a :class:`FileReport` from a ``GET /files/{id}`` response body.

    Raises:
        VirusTotalError: If the body lacks ``data.attributes`` or an engine
            entry in ``last_analysis_results`` is not an object.
    """
    try:
        attributes = payload["data"]["attributes"]
    except (KeyError, TypeError) as exc:
        raise VirusTotalError(f"unexpected VirusTotal response for {resource}") from exc
    if not isinstance(attributes, dict):
        raise VirusTotalError(f"unexpected VirusTotal response for {resource}")

    results = attributes.get("last_analysis_results") or {}
    if not isinstance(results, dict) or not all(isinstance(e, dict) for e in results.values()):
        raise VirusTotalError(f"malformed analysis results for {resource}")
    detections = {
        engine: entry.get("category") in _DETECTED_CATEGORIES
        for engine, entry in results.items()
        if entry.get("category") not in _NON_PARTICIPATING_CATEGORIES
    }
    return FileReport(resource=resource, sha256=sha256, present=bool(results), detections=detections)


class VirusTotalClient:
    """Synchronous VirusTotal v3 client.

    Lookups are issued one at a time; the caller is responsible for pacing
    them within the account's per-minute quota.

    Args:
        api_key: VirusTotal API key, sent as the ``x-apikey`` header.
        base_url: API root.  Override for testing or private mirrors.
        timeout: Per-request timeout in seconds.
        http_client: Optional pre-built :class:`httpx.Client` (tests inject
            one backed by :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"x-apikey": api_key, "accept": "application/json"},
        )

    def __enter__(self) -> "VirusTotalClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def get_file_report(self, path: Path) -> FileReport:
        """Return the latest VirusTotal report for the file at *path*.

        Raises:
            RateLimitExceeded: If the request quota is exhausted.
            VirusTotalError: On any other HTTP or network failure.
            OSError: If *path* cannot be read for hashing.
        """
        sha256 = file_digest(path, "sha256")
        try:
            response = self._client.get(f"/files/{sha256}")
        except httpx.HTTPError as exc:
            virustotal_errors_total.labels(error_type="network_error").inc()
            raise VirusTotalError(f"VirusTotal request for {path} failed: {exc}") from exc

        if response.status_code == 404:
            logger.debug("VirusTotal has no report for %s (sha256=%s)", path, sha256)
            return FileReport(resource=path, sha256=sha256, present=False)

        if response.status_code == 429:
            virustotal_errors_total.labels(error_type="rate_limit").inc()
            raise RateLimitExceeded("VirusTotal API request quota exceeded")

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            virustotal_errors_total.labels(error_type="http_error").inc()
            raise VirusTotalError(
                f"VirusTotal returned HTTP {response.status_code} for {path}"
            ) from exc

        try:
            return parse_file_report(path, sha256, response.json())
        except (ValueError, VirusTotalError) as exc:
            virustotal_errors_total.labels(error_type="bad_response").inc()
            raise VirusTotalError(f"unreadable VirusTotal response for {path}") from exc
