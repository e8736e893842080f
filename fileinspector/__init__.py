"""FileInspector — file integrity and trust validation pipeline.

Public re-exports for library use::

    from fileinspector import Inspector, ScanConfig

    config = ScanConfig().add_extension_restrictions([".pdf", ".docx"])
    result = Inspector(config).scan("/srv/uploads/batch-42")
    print(result.response_code, result.invalid_files)
"""

from fileinspector.core.codes import ResponseCode
from fileinspector.core.inspector import Inspector
from fileinspector.core.result import InvalidFile, Result
from fileinspector.core.scan_config import ScanConfig
from fileinspector.core.steps import FormatSpecificValidator, Step

__all__ = [
    "FormatSpecificValidator",
    "Inspector",
    "InvalidFile",
    "ResponseCode",
    "Result",
    "ScanConfig",
    "Step",
]
