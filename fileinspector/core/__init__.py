"""FileInspector core validation pipeline.

This package contains the step contract and built-in steps, the evaluator
that reduces step outcomes to one response code, the per-scan result ledger,
the optional plugin loader, and the :class:`~fileinspector.core.inspector.Inspector`
orchestrator that ties them together.
"""
