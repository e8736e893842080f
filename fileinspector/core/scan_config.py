"""ScanConfig — immutable configuration an :class:`Inspector` is built from.

Each fluent method returns a *new* :class:`ScanConfig`; nothing is mutated in
place, so a finished configuration can be shared freely::

    config = (
        ScanConfig()
        .add_extension_restrictions(["pdf", ".DOCX"])
        .max_size(10 * 1024 * 1024)
        .enable_av("/usr/bin/clamscan", "-r --no-summary {path}")
        .enable_format_verification()
    )
    inspector = Inspector(config)
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from fileinspector.core.extensions import normalise_extension
from fileinspector.core.steps.base import Step
from fileinspector.core.steps.virustotal_scan import DEFAULT_ALERT_THRESHOLD, DEFAULT_QUOTA
from fileinspector.engines import AVEngine, SubprocessAVEngine, build_av_engine

if TYPE_CHECKING:
    from fileinspector.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanConfig:
    """Which checks a scan runs and how they are parameterised.

    Attributes:
        allowed_extensions: Extension whitelist; empty disables the check.
        allowed_checksums: Digest whitelist; empty disables the check.
        checksum_algorithm: :mod:`hashlib` algorithm for the digest whitelist.
        min_size_bytes: Lower size bound, or ``None`` for unbounded.
        max_size_bytes: Upper size bound, or ``None`` for unbounded.
        av_engine: Local AV engine for the gating AV step, or ``None``.
        virustotal_api_key: Enables the VirusTotal gating step when set.
        virustotal_quota: Largest file count sent to VirusTotal per scan.
        virustotal_alert_threshold: Detection ratio above which a file is rejected.
        custom_steps: User-supplied steps, run after the built-in ones.
        format_verification: Run validators from loaded plugin bundles.
        scan_recursive: Include files in subdirectories of the scan path.
    """

    allowed_extensions: frozenset[str] = frozenset()
    allowed_checksums: frozenset[str] = frozenset()
    checksum_algorithm: str = "md5"
    min_size_bytes: int | None = None
    max_size_bytes: int | None = None
    av_engine: AVEngine | None = None
    virustotal_api_key: str | None = None
    virustotal_quota: int = DEFAULT_QUOTA
    virustotal_alert_threshold: float = DEFAULT_ALERT_THRESHOLD
    custom_steps: tuple[Step, ...] = ()
    format_verification: bool = False
    scan_recursive: bool = False

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ScanConfig":
        """Build the configuration described by application settings."""
        return cls(
            allowed_extensions=frozenset(normalise_extension(e) for e in settings.allowed_extensions),
            allowed_checksums=frozenset(c.lower() for c in settings.allowed_checksums),
            checksum_algorithm=settings.checksum_algorithm,
            min_size_bytes=settings.min_size_bytes,
            max_size_bytes=settings.max_size_bytes,
            av_engine=build_av_engine(settings),
            virustotal_api_key=settings.virustotal_api_key,
            virustotal_quota=settings.virustotal_quota,
            virustotal_alert_threshold=settings.virustotal_alert_threshold,
            format_verification=settings.format_verification,
            scan_recursive=settings.scan_recursive,
        )

    def _replace(self, **changes: object) -> "ScanConfig":
        return dataclasses.replace(self, **changes)

    # ------------------------------------------------------------------
    # Extension whitelist
    # ------------------------------------------------------------------

    def add_extension_restriction(self, extension: str) -> "ScanConfig":
        return self.add_extension_restrictions([extension])

    def add_extension_restrictions(self, extensions: Iterable[str]) -> "ScanConfig":
        added = {normalise_extension(e) for e in extensions}
        logger.info("Adding extensions to whitelist: %s", ", ".join(sorted(added)))
        return self._replace(allowed_extensions=self.allowed_extensions | added)

    def remove_extension_restriction(self, extension: str) -> "ScanConfig":
        return self.remove_extension_restrictions([extension])

    def remove_extension_restrictions(self, extensions: Iterable[str]) -> "ScanConfig":
        removed = {normalise_extension(e) for e in extensions}
        return self._replace(allowed_extensions=self.allowed_extensions - removed)

    # ------------------------------------------------------------------
    # Checksum whitelist
    # ------------------------------------------------------------------

    def add_allowed_checksum(self, digest: str) -> "ScanConfig":
        return self.add_allowed_checksums([digest])

    def add_allowed_checksums(self, digests: Iterable[str]) -> "ScanConfig":
        added = {d.strip().lower() for d in digests}
        return self._replace(allowed_checksums=self.allowed_checksums | added)

    def remove_allowed_checksum(self, digest: str) -> "ScanConfig":
        return self.remove_allowed_checksums([digest])

    def remove_allowed_checksums(self, digests: Iterable[str]) -> "ScanConfig":
        removed = {d.strip().lower() for d in digests}
        return self._replace(allowed_checksums=self.allowed_checksums - removed)

    def with_checksum_algorithm(self, algorithm: str) -> "ScanConfig":
        return self._replace(checksum_algorithm=algorithm)

    # ------------------------------------------------------------------
    # Size bounds
    # ------------------------------------------------------------------

    def min_size(self, size_bytes: int | None) -> "ScanConfig":
        return self._replace(min_size_bytes=size_bytes)

    def max_size(self, size_bytes: int | None) -> "ScanConfig":
        return self._replace(max_size_bytes=size_bytes)

    # ------------------------------------------------------------------
    # Gating steps
    # ------------------------------------------------------------------

    def enable_av(self, executable: str, arguments: str = "") -> "ScanConfig":
        """Run *executable* with *arguments* over the scan path before other checks."""
        logger.info("Enabling AV engine scan: path=%s arguments=%s", executable, arguments)
        return self._replace(av_engine=SubprocessAVEngine(executable, arguments))

    def enable_av_engine(self, engine: AVEngine) -> "ScanConfig":
        return self._replace(av_engine=engine)

    def disable_av(self) -> "ScanConfig":
        return self._replace(av_engine=None)

    def enable_virus_total(self, api_key: str) -> "ScanConfig":
        logger.info("Enabling VirusTotal scan")
        return self._replace(virustotal_api_key=api_key)

    def disable_virus_total(self) -> "ScanConfig":
        return self._replace(virustotal_api_key=None)

    # ------------------------------------------------------------------
    # Custom and format-specific steps
    # ------------------------------------------------------------------

    def add_custom_step(self, step: Step) -> "ScanConfig":
        """Append *step* to the custom phase.

        Every :class:`Inspector` built from the configuration runs a shallow
        copy of *step*, so per-scan flags are never shared between
        inspectors.  Mutable attributes of the step still are.
        """
        logger.info("Adding custom validation step: %s", step.name)
        return self._replace(custom_steps=(*self.custom_steps, step))

    def remove_all_custom_steps(self) -> "ScanConfig":
        return self._replace(custom_steps=())

    def enable_format_verification(self) -> "ScanConfig":
        return self._replace(format_verification=True)

    def disable_format_verification(self) -> "ScanConfig":
        return self._replace(format_verification=False)
