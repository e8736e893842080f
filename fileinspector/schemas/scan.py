"""Pydantic schemas for the scan API.

``ScanRequest`` is the body of ``POST /v1/scan``; ``ScanResponse`` mirrors a
:class:`~fileinspector.core.result.Result` in JSON-friendly form.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from fileinspector.core.result import Result


class ScanRequest(BaseModel):
    path: str = Field(..., min_length=1, description="Directory (or file) on the server to scan")


class InvalidFileOut(BaseModel):
    file: str
    code: int
    message: str


class ScanResponse(BaseModel):
    """Outcome of a scan.

    Attributes:
        scan_id: Identifier of the scan, or ``None`` when preparation failed.
        response_code: Aggregate response code.
        response: Name of the aggregate code (e.g. ``"EXTENSION"``).
        valid_files: Files that passed every executed check.
        invalid_files: Rejected files with the rejecting step's code and reason.
        inconclusive_files: Files no verdict could be reached for.
        executed_steps: Names of the steps that ran, in order.
        errors: Step or preparation errors recorded during the scan.
    """

    scan_id: str | None = None
    response_code: int
    response: str
    valid_files: list[str] = Field(default_factory=list)
    invalid_files: list[InvalidFileOut] = Field(default_factory=list)
    inconclusive_files: list[str] = Field(default_factory=list)
    executed_steps: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: Result) -> "ScanResponse":
        return cls(
            scan_id=result.scan_id,
            response_code=int(result.response_code),
            response=result.response_name,
            valid_files=[str(f) for f in result.valid_files],
            invalid_files=[
                InvalidFileOut(file=str(i.file), code=int(i.code), message=i.message)
                for i in result.invalid_files
            ],
            inconclusive_files=[str(f) for f in result.inconclusive_files],
            executed_steps=result.executed_steps,
            errors=list(result.errors),
        )


class PluginsResponse(BaseModel):
    loaded_libraries: list[str]
    supported_formats: list[str]
