class YkdashError(Exception):
    """Base class for errors raised by ykdash."""


class SourceUnavailableError(YkdashError):
    """ykman could not be run or exited with a non-zero status."""


class ParseError(YkdashError):
    def __init__(self, line: str, reason: str = "unrecognised format") -> None:
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason


class TouchFlowError(YkdashError):
    """A touch-confirmation request did not produce a usable code."""


class StartupError(YkdashError):
    """Unrecoverable failure before the dashboard starts."""
