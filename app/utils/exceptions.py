class ParseError(ValueError):
    """Base error for documents that cannot be turned into questions."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InputDecodeError(ParseError):
    """The uploaded bytes are not a readable spreadsheet or document."""


class NoContentExtracted(ParseError):
    """The input was readable but held no valid question."""


class OCRFailure(ParseError):
    """OCR failed for a single image. Absorbed by the image batch."""


class UploadError(ValueError):
    """The upload itself was rejected (missing file, type or size)."""
