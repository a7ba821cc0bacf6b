"""
Response Capture

Stands in for the server's WSGI start_response so the body of a markup
response can be held back and rewritten before anything is transmitted.

The wrapped application sees the usual contract: start_response() returns a
write callable and the body may be written through it or returned as an
iterable. What happens to the bytes depends on the sink picked from the
Content-Type the application declares:

- BufferingSink:   markup; status, headers and body are held back
- PassThroughSink: anything else; start_response reaches the server at once
                   and every chunk is forwarded untouched
"""

import logging
from typing import Callable, List, Optional, Protocol, Tuple


logger = logging.getLogger(__name__)


DEFAULT_CHARSET = 'utf-8'

Headers = List[Tuple[str, str]]


def header_value(headers: Headers, name: str) -> Optional[str]:
    """Value of the first header called name (case-insensitive)."""
    name = name.lower()
    for key, value in headers:
        if key.lower() == name:
            return value
    return None


def is_markup_content_type(content_type: Optional[str]) -> bool:
    """True for text/html content types."""
    return bool(content_type) and 'text/html' in content_type.lower()


def content_charset(content_type: Optional[str]) -> str:
    """Charset parameter of a Content-Type value, utf-8 when absent."""
    for parameter in (content_type or '').split(';')[1:]:
        key, _, value = parameter.partition('=')
        if key.strip().lower() == 'charset' and value.strip():
            return value.strip().strip('"\'')
    return DEFAULT_CHARSET


# =============================================================================
# Sinks
# =============================================================================

class WriteSink(Protocol):
    """Where the application's body bytes go."""

    def write(self, data: bytes) -> None:
        ...


class BufferingSink:
    """Keeps everything written in memory for the duration of one request."""

    def __init__(self, charset: str = DEFAULT_CHARSET):
        self.charset = charset
        self.chunks: List[bytes] = []

    def write(self, data: bytes) -> None:
        if data:
            self.chunks.append(data)

    def raw(self) -> bytes:
        return b''.join(self.chunks)

    def collected(self) -> str:
        """
        Everything written so far as text.

        Raises:
            UnicodeDecodeError: When the body does not match the charset
            LookupError: When the charset is unknown
        """
        return self.raw().decode(self.charset)


class PassThroughSink:
    """Forwards every write to the server."""

    def __init__(self, write: Callable[[bytes], None]):
        self._write = write

    def write(self, data: bytes) -> None:
        self._write(data)


# =============================================================================
# Capture
# =============================================================================

class ResponseCapture:
    """
    Per-request replacement for start_response.

    Args:
        start_response: The server's start_response
        is_markup: Predicate on the Content-Type deciding what is buffered
    """

    def __init__(self, start_response: Callable,
                 is_markup: Callable[[Optional[str]], bool] = is_markup_content_type):
        self._start_response = start_response
        self._is_markup = is_markup
        self.sink: Optional[WriteSink] = None
        self.status: Optional[str] = None
        self.headers: Headers = []
        self.exc_info = None

    @property
    def started(self) -> bool:
        return self.sink is not None

    @property
    def buffering(self) -> bool:
        return isinstance(self.sink, BufferingSink)

    @property
    def content_type(self) -> Optional[str]:
        return header_value(self.headers, 'Content-Type')

    def start_response(self, status: str, headers: Headers, exc_info=None) -> Callable[[bytes], None]:
        """Same contract as the WSGI start_response callable."""
        if exc_info is not None:
            if isinstance(self.sink, PassThroughSink):
                # Headers already reached the server; it decides whether to re-raise
                return self._start_response(status, headers, exc_info)
            self.exc_info = exc_info
        elif self.started:
            raise AssertionError('start_response() called twice without exc_info')

        self.status = status
        self.headers = list(headers)

        if self._is_markup(self.content_type):
            # A replacement response (exc_info) starts from an empty buffer
            self.sink = BufferingSink(content_charset(self.content_type))
            logger.debug(f"Buffering {self.content_type} response")
        else:
            self.sink = PassThroughSink(self._start_response(status, headers, exc_info))
            self.exc_info = None
        return self.sink.write

    def collected(self) -> str:
        """Text written so far to a buffering sink."""
        if not self.buffering:
            raise RuntimeError('Response is not being buffered')
        return self.sink.collected()
