"""VirusTotal reputation gating step."""

from __future__ import annotations

import logging
from typing import Callable

from fileinspector.core.codes import ResponseCode
from fileinspector.core.result import Result
from fileinspector.core.scan_context import ScanContext
from fileinspector.core.steps.base import Step
from fileinspector.services.virustotal import (
    FileReport,
    RateLimitExceeded,
    VirusTotalClient,
    VirusTotalError,
)

logger = logging.getLogger(__name__)

#: Fraction of participating engines that must flag a file before it is rejected.
DEFAULT_ALERT_THRESHOLD = 0.10

#: Files per scan the free VirusTotal API allows within its per-minute quota.
DEFAULT_QUOTA = 4

ClientFactory = Callable[[str], VirusTotalClient]


class VirusTotalScan(Step):
    """Looks every file up on VirusTotal and rejects files the engines flag.

    The step disables itself when no API key is configured, and (with a
    warning, not an error) when the scan holds more files than *quota*.
    Lookups happen one file at a time.  Hitting the rate limit mid-run sets
    :attr:`aborted` and stops further lookups; reports gathered so far are
    still evaluated.  A flagged file rejects the file and sets :attr:`fatal`.

    Files VirusTotal has no analysis for, and files never looked up because
    of an abort or a failed request, are recorded as inconclusive.

    Args:
        api_key: VirusTotal API key, or ``None`` to leave the step disabled.
        quota: Largest file count the step will submit in one scan.
        alert_threshold: Detection ratio above which a file is rejected.
        client_factory: Builds the client from the API key.  Defaults to
            :class:`~fileinspector.services.virustotal.VirusTotalClient`.
    """

    name = "VirusTotal scan"
    error_code = ResponseCode.VIRUS_TOTAL

    def __init__(
        self,
        api_key: str | None = None,
        *,
        quota: int = DEFAULT_QUOTA,
        alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
        client_factory: ClientFactory | None = None,
    ) -> None:
        super().__init__(enabled=api_key is not None)
        self.api_key = api_key
        self.quota = quota
        self.alert_threshold = alert_threshold
        self._client_factory: ClientFactory = client_factory or VirusTotalClient
        self._client: VirusTotalClient | None = None

    def setup(self, context: ScanContext) -> None:
        if not self.api_key:
            self.disable()
            return

        if context.file_count > self.quota:
            logger.warning(
                "VirusTotal scan skipped: the scan holds %d files, more than the "
                "request quota allows (%d)",
                context.file_count,
                self.quota,
            )
            self.disable()
            return

        self.enable()

    def run(self, context: ScanContext, result: Result) -> None:
        if not self.api_key:
            raise RuntimeError("VirusTotal scan run without an API key")
        self._client = self._client_factory(self.api_key)

        reports: list[FileReport] = []
        files = list(context.files)
        try:
            for index, file in enumerate(files):
                try:
                    reports.append(self._client.get_file_report(file))
                except RateLimitExceeded as exc:
                    logger.error(
                        "VirusTotal request limit reached, aborting the VirusTotal scan "
                        "after %d of %d files: %s",
                        index,
                        len(files),
                        exc,
                    )
                    self.aborted = True
                    for skipped in files[index:]:
                        result.mark_inconclusive(skipped)
                    break
                except (VirusTotalError, OSError) as exc:
                    logger.warning("VirusTotal lookup failed for %s: %s", file, exc)
                    result.mark_inconclusive(file)
        finally:
            # Reports already gathered are evaluated even if a lookup blew up.
            for report in reports:
                self._evaluate(report, result)

    def cleanup(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _evaluate(self, report: FileReport, result: Result) -> None:
        if not report.present or report.total == 0:
            logger.info("VirusTotal has no analysis for %s; leaving it inconclusive", report.resource)
            result.mark_inconclusive(report.resource)
            return

        logger.debug(
            "VirusTotal %s: %d/%d engines flagged the file",
            report.resource,
            report.positives,
            report.total,
        )
        if report.detection_ratio > self.alert_threshold:
            self.fatal = True
            self.report_invalid(
                result,
                report.resource,
                f"VirusTotal's AV engines rank file {report.resource} as suspicious "
                f"({report.positives}/{report.total} detections).",
            )
        else:
            self.report_valid(report.resource)
