"""Inspector — orchestration of the FileInspector validation pipeline.

:class:`Inspector` owns three ordered step lists and two gating steps and
runs them for each :meth:`Inspector.scan` call:

1. **prepare**         : resolve the file set; failure returns immediately
   with the preparation code.
2. **mark valid**      : every file starts valid; steps only demote.
3. **av_scan**         : local AV engine.  A fatal outcome cleans up and
   returns ``FATAL`` without running anything else.
4. **virustotal**      : remote reputation lookups, same abort rule.
5. **built-in steps**  : extension, checksum, signature, size.
6. **custom steps**    : user-supplied :class:`Step` objects.
7. **format-specific** : validators from loaded plugin bundles, only when
   format verification is enabled.
8. **cleanup**         : every step's ``cleanup``, always, even on abort.

Outcomes of phases 5–7 are folded through one
:class:`~fileinspector.core.evaluator.Evaluator`.  A phase that ends on a
fatal outcome skips the remaining phases and the scan's code is ``FATAL``.

Every step execution opens an OpenTelemetry child span under the
``fileinspector.scan`` root span.

Usage::

    from fileinspector import Inspector, ScanConfig

    inspector = Inspector(ScanConfig().add_extension_restriction(".pdf"))
    result = inspector.scan("/srv/uploads/batch-42")
    for invalid in result.invalid_files:
        print(invalid.file, invalid.code, invalid.message)
"""

from __future__ import annotations

import copy
import logging
import time
from pathlib import Path
from typing import Iterable, Sequence

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from prometheus_client import Counter

from fileinspector.config import Settings, get_settings
from fileinspector.core.codes import ResponseCode, code_name
from fileinspector.core.evaluator import Evaluator
from fileinspector.core.plugins import PluginLoader
from fileinspector.core.result import Result
from fileinspector.core.scan_config import ScanConfig
from fileinspector.core.scan_context import PreparationError, ScanContext, prepare_context
from fileinspector.core.signatures import SignatureTable
from fileinspector.core.steps import (
    AVScan,
    Checksum,
    Extension,
    Signature,
    Size,
    Step,
    VirusTotalScan,
)
from fileinspector.core.steps.virustotal_scan import ClientFactory
from fileinspector.services.virustotal import VirusTotalClient

logger = logging.getLogger(__name__)

# One tracer per module, reused across all scans.
tracer = trace.get_tracer("fileinspector.inspector")

# ---------------------------------------------------------------------------
# Prometheus metrics
# ---------------------------------------------------------------------------

scans_total = Counter(
    "fileinspector_scans_total",
    "Total number of completed scans by response code",
    ["response"],
)

step_failures_total = Counter(
    "fileinspector_step_failures_total",
    "Total number of step executions that rejected at least one file",
    ["step"],
)


class Inspector:
    """Runs the validation pipeline described by a finished :class:`ScanConfig`.

    Optional plugin bundles are discovered once, at construction.  The
    inspector is not meant to be shared between concurrent scans; build one
    per worker.

    Args:
        config: What to check.  Defaults to an empty configuration, which
            only runs the signature check.
        settings: Application settings, used for template paths, the plugin
            directory, and VirusTotal connection details.  Defaults to
            :func:`~fileinspector.config.get_settings`.
        loader: Pre-built plugin loader.  Built from *settings* when omitted;
            :meth:`PluginLoader.discover` is called either way.
        signatures: Magic-number table.  Loaded from
            ``settings.signatures_path`` when omitted.
        virustotal_client_factory: Builds the VirusTotal client from an API
            key.  Tests inject a client backed by a mock transport.
    """

    def __init__(
        self,
        config: ScanConfig | None = None,
        *,
        settings: Settings | None = None,
        loader: PluginLoader | None = None,
        signatures: SignatureTable | None = None,
        virustotal_client_factory: ClientFactory | None = None,
    ) -> None:
        logger.info("Initialising Inspector instance")
        self._settings = settings or get_settings()
        self._config = config or ScanConfig()

        if virustotal_client_factory is None:
            virustotal_client_factory = self._default_virustotal_client

        self._av_scan = AVScan(self._config.av_engine)
        self._virus_total = VirusTotalScan(
            self._config.virustotal_api_key,
            quota=self._config.virustotal_quota,
            alert_threshold=self._config.virustotal_alert_threshold,
            client_factory=virustotal_client_factory,
        )

        if signatures is None:
            signatures = SignatureTable.from_file(self._settings.signatures_path)

        self._steps: list[Step] = [
            Extension(self._config.allowed_extensions),
            Checksum(self._config.allowed_checksums, algorithm=self._config.checksum_algorithm),
            Signature(signatures),
            Size(self._config.min_size_bytes, self._config.max_size_bytes),
        ]
        # Per-scan flags live on the step, so each inspector runs its own copies.
        self._custom_steps: list[Step] = [copy.copy(s) for s in self._config.custom_steps]

        self._loader = loader or PluginLoader.from_manifest_file(
            self._settings.library_manifest_path, self._settings.plugin_dir
        )
        self._format_specific_steps: list[Step] = list(self._loader.discover())

    def _default_virustotal_client(self, api_key: str) -> VirusTotalClient:
        return VirusTotalClient(
            api_key,
            base_url=self._settings.virustotal_base_url,
            timeout=self._settings.virustotal_timeout_seconds,
        )

    @property
    def config(self) -> ScanConfig:
        return self._config

    @property
    def steps(self) -> list[Step]:
        return list(self._steps)

    @property
    def custom_steps(self) -> list[Step]:
        return list(self._custom_steps)

    @property
    def format_specific_steps(self) -> list[Step]:
        return list(self._format_specific_steps)

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def scan(self, path: str | Path) -> Result:
        """Run every enabled check over the files at *path*.

        Args:
            path: Directory to scan (a single file is also accepted).

        Returns:
            The scan's :class:`~fileinspector.core.result.Result`.  Its
            response code is ``OK`` when nothing failed, a step's error code
            when exactly one step failed, ``MULTIPLE`` when several did,
            ``FATAL`` when a gating or fatal step aborted the scan, or a
            preparation code when the file set could not be resolved.
        """
        logger.info("Initiating scan of %s", path)
        started = time.monotonic()
        result = Result()

        with tracer.start_as_current_span("fileinspector.scan", kind=trace.SpanKind.INTERNAL) as span:
            span.set_attribute("scan.path", str(path))

            try:
                context = prepare_context(
                    path,
                    recursive=self._config.scan_recursive,
                    format_verification=self._config.format_verification,
                )
            except PreparationError as exc:
                logger.error("Scan preparation failed: %s", exc)
                result.errors.append(f"step=prepare error={exc}")
                result.set_response_code(exc.code)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                span.set_attribute("scan.response", code_name(exc.code))
                scans_total.labels(response=code_name(exc.code)).inc()
                return result

            result.scan_id = context.scan_id
            span.set_attribute("scan.id", context.scan_id)
            span.set_attribute("scan.file_count", context.file_count)
            result.mark_all_valid(context.files)

            try:
                code = self._run_pipeline(context, result)
            finally:
                self._cleanup()

            result.set_response_code(code)
            span.set_attribute("scan.response", result.response_name)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        scans_total.labels(response=result.response_name).inc()
        logger.info(
            "Scan complete: scan_id=%s response=%s valid=%d invalid=%d inconclusive=%d duration_ms=%d",
            context.scan_id,
            result.response_name,
            len(result.valid_files),
            len(result.invalid_files),
            len(result.inconclusive_files),
            elapsed_ms,
        )
        return result

    # ------------------------------------------------------------------
    # Pipeline phases
    # ------------------------------------------------------------------

    def _run_pipeline(self, context: ScanContext, result: Result) -> int:
        for gate in (self._av_scan, self._virus_total):
            if self._run_gate(gate, context, result):
                logger.warning("%s flagged malware in the scanned files. Aborting.", gate.name)
                return ResponseCode.FATAL

        evaluator = Evaluator()

        logger.debug("Initiating built-in file validations")
        if self._run_phase(self._steps, context, result, evaluator):
            return ResponseCode.FATAL

        logger.debug("Initiating custom file validations")
        if self._run_phase(self._custom_steps, context, result, evaluator):
            return ResponseCode.FATAL

        if context.format_verification:
            logger.debug("Initiating format specific file validations")
            if self._run_phase(self._format_specific_steps, context, result, evaluator):
                return ResponseCode.FATAL

        return evaluator.result()

    def _run_gate(self, step: Step, context: ScanContext, result: Result) -> bool:
        """Run a gating step; return ``True`` if it demands an abort."""
        if not self._setup(step, context, result):
            return False
        self._execute(step, context, result)
        return step.fatal

    def _run_phase(
        self,
        steps: Sequence[Step],
        context: ScanContext,
        result: Result,
        evaluator: Evaluator,
    ) -> bool:
        """Run *steps* in order, folding each summary; return ``True`` on a fatal outcome."""
        for step in steps:
            if not self._setup(step, context, result):
                continue
            evaluator.fold(self._execute(step, context, result))
            if step.fatal:
                logger.warning("%s reported a fatal error. Aborting remaining steps.", step.name)
                return True
        return evaluator.result() == ResponseCode.FATAL

    @staticmethod
    def _setup(step: Step, context: ScanContext, result: Result) -> bool:
        """Reset and set up *step*; return whether it should run."""
        step.reset()
        try:
            step.setup(context)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Setup of step %r failed; skipping it", step.name)
            step.aborted = True
            result.errors.append(f"step={step.name} error={type(exc).__name__}: {exc}")
            return False
        return step.enabled

    @staticmethod
    def _execute(step: Step, context: ScanContext, result: Result) -> int:
        """Run an enabled step inside a child span and return its summary code."""
        with tracer.start_as_current_span("fileinspector.step") as span:
            span.set_attribute("step.name", step.name)
            span.set_attribute("scan.id", context.scan_id)
            logger.debug("Initiating step %s", step.name)
            result.record_executed_step(step.name)

            try:
                step.run(context, result)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Step %r failed unexpectedly; its results are partial", step.name)
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                step.aborted = True
                result.errors.append(f"step={step.name} error={type(exc).__name__}: {exc}")

            summary = step.summary()
            span.set_attribute("step.summary", code_name(summary))
            span.set_attribute("step.fatal", step.fatal)
            span.set_attribute("step.aborted", step.aborted)
            if summary != ResponseCode.OK:
                step_failures_total.labels(step=step.name).inc()
            return summary

    def _cleanup(self) -> None:
        logger.debug("Cleaning up steps")
        every_step: Iterable[Step] = (
            self._av_scan,
            self._virus_total,
            *self._steps,
            *self._custom_steps,
            *self._format_specific_steps,
        )
        for step in every_step:
            try:
                step.cleanup()
            except Exception:  # noqa: BLE001
                logger.exception("Cleanup of step %r failed", step.name)

    # ------------------------------------------------------------------
    # Plugin queries
    # ------------------------------------------------------------------

    def loaded_libraries(self) -> list[str]:
        """Names of the optional bundles that loaded successfully."""
        return self._loader.loaded_libraries()

    def supported_formats(self) -> list[str]:
        """Extensions that some known bundle claims, installed or not."""
        return self._loader.supported_formats()

    def is_library_loaded(self, name: str) -> bool:
        return self._loader.is_library_loaded(name)

    def is_format_supported(self, extension: str) -> bool:
        return self._loader.is_format_supported(extension)

    def is_format_validated(self, extension: str) -> bool:
        """Whether files with *extension* get a format-specific validator."""
        return self._loader.is_format_validator_loaded(extension)
