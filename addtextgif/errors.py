"""Exception classes for the captioning pipeline."""


class PipelineError(Exception):
    """Base exception for pipeline errors.

    The message is user facing and shown by the editor as-is.
    """

    pass


class DecodeError(PipelineError):
    """Raised when the uploaded binary is not a GIF or contains no frames."""

    pass


class EncodeError(PipelineError):
    """Raised when there is nothing to render or the encoder aborted."""

    pass


class EmptyGifError(DecodeError):
    """Raised when a GIF is well-formed but holds no image frames."""

    pass
