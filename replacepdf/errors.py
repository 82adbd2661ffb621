"""Error types raised by the find-and-replace pipeline."""


class InputError(ValueError):
    """The request itself is unusable (no document, empty find text, ...)."""


class MalformedStreamError(ValueError):
    """A content stream could not be tokenized (unterminated string etc.)."""

    def __init__(self, message: str, offset: int | None = None):
        if offset is not None:
            message = f"{message} at byte {offset}"
        super().__init__(message)
        self.offset = offset


class ContainerError(RuntimeError):
    """PyMuPDF failed to load or serialize the document."""
