"""Error taxonomy shared by the analysis core and the HTTP layer.

Every ``AnalysisAPIError`` carries the status code and the ``{error, message}``
pair that ends up in the JSON error envelope.
"""

from __future__ import annotations

from typing import Dict


class AnalysisAPIError(Exception):
    status_code = 400
    error = "Bad request"

    def __init__(self, message: str, *, error: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code

    def to_envelope(self) -> Dict[str, str]:
        return {"error": self.error, "message": self.message}


class InputRejectedError(AnalysisAPIError):
    """Missing upload field, non-audio content type or disallowed method."""

    error = "Upload error"


class OversizedInputError(AnalysisAPIError):
    error = "File too large"


class AudioDecodeError(AnalysisAPIError):
    """Uploaded bytes could not be decoded into samples."""

    error = "Upload error"


class DegenerateBufferError(ValueError):
    """Raised by the analysis core for empty or otherwise unusable buffers."""
