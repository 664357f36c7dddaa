"""Error taxonomy and classification for codec failures.

Every error is fatal for the document being processed; nothing is
retried. Classification exists so the driver can log failures by
category and move on to the next input file.
"""

from __future__ import annotations

from enum import Enum


class ScopeCodecError(Exception):
    """Base class for every error raised by the codec core."""


class MalformedStreamError(ScopeCodecError, ValueError):
    """The encoded stream does not follow the item grammar."""


class UnbalancedNestingError(MalformedStreamError):
    """Start/end items (or their attachments) do not nest properly."""


class PreconditionError(ScopeCodecError, ValueError):
    """The ScopeInfo handed to an encoder violates a model invariant."""


class UnsupportedFeatureError(ScopeCodecError, NotImplementedError):
    """The layout explicitly does not implement this part of the format."""


class MissingInputError(ScopeCodecError, ValueError):
    """The document lacks the fields a codec needs to decode."""


class RoundTripError(ScopeCodecError, AssertionError):
    """Decoding an encoded document did not reproduce the input."""


class ErrorClass(Enum):
    MALFORMED = "malformed"  # bad bytes in the document
    PRECONDITION = "precondition"  # producer bug in the input model
    UNSUPPORTED = "unsupported"  # layout cannot represent the data
    MISSING_INPUT = "missing_input"  # required field absent
    ROUND_TRIP = "round_trip"  # verification mismatch
    UNKNOWN = "unknown"  # not raised by the codec core


_CLASSES: tuple[tuple[type[ScopeCodecError], ErrorClass], ...] = (
    (MalformedStreamError, ErrorClass.MALFORMED),
    (PreconditionError, ErrorClass.PRECONDITION),
    (UnsupportedFeatureError, ErrorClass.UNSUPPORTED),
    (MissingInputError, ErrorClass.MISSING_INPUT),
    (RoundTripError, ErrorClass.ROUND_TRIP),
)


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an error by the part of the pipeline it blames.

    Subclasses are matched before their bases, so an
    UnbalancedNestingError is MALFORMED.
    """
    for error_type, error_class in _CLASSES:
        if isinstance(error, error_type):
            return error_class
    return ErrorClass.UNKNOWN
