"""Exception types raised by the ZQR codec."""


class CodeError(Exception):
    """Base class for every error raised while encoding or reading a code."""


class UnknownSymbol(CodeError):
    """A character outside the 64-symbol alphabet.

    Only raised by the alphabet lookup. The encoder recovers from it by
    writing the ignore marker instead.
    """

    def __init__(self, symbol: str):
        super().__init__(f"Unknown symbol: {symbol!r}")
        self.symbol = symbol


class DecodeError(CodeError):
    """A grid could not be read back into text."""

    def __init__(self, detail: str):
        super().__init__(f"Invalid code reading! {detail}")
        self.detail = detail


class InvalidOrientation(DecodeError):
    """Zero, or two or more, orientation markers are off."""

    def __init__(self, markers_off: int):
        super().__init__(f"Number of orientation bits off: {markers_off}")
        self.markers_off = markers_off


class ChecksumMismatch(DecodeError):
    """The stored 3-bit checksum disagrees with the cell count."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Checksum does not match (stored {expected}, counted {actual}).")
        self.expected = expected
        self.actual = actual


class AmbiguousCorners(CodeError):
    """Four points could not be assigned one-to-one to the four corners."""

    def __init__(self, detail: str, points=None):
        super().__init__(f"Cannot classify corners: {detail}")
        self.detail = detail
        self.points = points
