"""Validation steps.

Public re-exports for the steps package::

    from fileinspector.core.steps import Extension, Step
"""

from fileinspector.core.steps.av_scan import AVScan
from fileinspector.core.steps.base import FormatSpecificValidator, Step
from fileinspector.core.steps.checksum import Checksum
from fileinspector.core.steps.extension import Extension
from fileinspector.core.steps.signature import Signature
from fileinspector.core.steps.size import Size
from fileinspector.core.steps.virustotal_scan import VirusTotalScan

__all__ = [
    "AVScan",
    "Checksum",
    "Extension",
    "FormatSpecificValidator",
    "Signature",
    "Size",
    "Step",
    "VirusTotalScan",
]
