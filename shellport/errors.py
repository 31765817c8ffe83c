"""Exceptions raised while resolving and rendering airports."""


class ShellportError(Exception):
    """Base class for every error the CLI reports to the user."""


class InvalidCodeError(ShellportError):
    """The airport identifier is not a 4-character ICAO code."""

    def __init__(self, code):
        self.code = code
        super().__init__("Please provide a valid 4-letter ICAO code")


class NotFoundError(ShellportError):
    """No source (cache, Overpass, OurAirports) knows the airport."""

    def __init__(self, code):
        self.code = code
        super().__init__(f"Airport {code} not found. Please check the ICAO code.")


class UpstreamError(ShellportError):
    """A required network or data call failed and no fallback remains."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")


class ResolutionCancelled(ShellportError):
    """The caller's cancellation token was set between network calls."""


class RenderError(ShellportError):
    """Geometry that cannot be projected.

    The renderer clamps degenerate bounds instead of raising this; it exists
    so callers can catch the whole taxonomy.
    """


def raise_if_cancelled(cancel_event) -> None:
    """Raise ResolutionCancelled once ``cancel_event`` (a threading.Event) is set."""
    if cancel_event is not None and cancel_event.is_set():
        raise ResolutionCancelled("Airport lookup cancelled")
