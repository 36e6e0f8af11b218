"""Error taxonomy for snapshot analysis."""

from __future__ import annotations


class AnalysisError(Exception):
    """Base class for analysis failures."""


class InputError(AnalysisError):
    """No usable content supplied; rejected before any extractor runs."""


class ExtractorError(AnalysisError):
    """An OCR or vision call failed or returned unparsable output."""

    def __init__(self, scope: str, message: str) -> None:
        self.scope = scope
        super().__init__(f"{scope}: {message}")


class SchemaError(ExtractorError):
    """Model JSON parsed but failed validation."""


class ParseError(AnalysisError):
    """No feature blocks found in a markdown document."""


class UpstreamFatalError(AnalysisError):
    """Both extractors failed and no usable text remains."""
