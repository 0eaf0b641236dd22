"""
Formatters for HTTP messages of the standard library.

``http.client.HTTPResponse`` and ``urllib.request.Request`` are dumped as their status or
request line, their headers and their body. A body is only read when its content type is
text-safe; the read-once stream is then replaced with an in-memory copy so the caller can
still read it after the dump.
"""

# Standard library -----------------------------------------------------------------------------------------------------
import http.client
import io
import warnings

from typing import TYPE_CHECKING, Any, Iterable

from urllib.request import Request

# Local ----------------------------------------------------------------------------------------------------------------
from .sentinels import INVALID
from .styles import StyleToken

if TYPE_CHECKING:
    from .engine import DumpState

__all__ = [
    "NETWORK_FORMATTERS",
    "dump_http_headers",
    "dump_http_request",
    "dump_http_response",
    "is_text_content",
]

BINARY_BODY = "<BINARY>"

_TEXT_SUBTYPES = frozenset({"json", "xml", "x-www-form-urlencoded", "ld+json", "xhtml+xml"})

_HTTP_VERSIONS = {9: "HTTP/0.9", 10: "HTTP/1.0", 11: "HTTP/1.1"}


# Methods --------------------------------------------------------------------------------------------------------------

def dump_http_headers(state: "DumpState", headers: Iterable[tuple[str, str]]) -> None:
    """
    Nested ``headers: {...}`` block, one line per header value, sorted by header name.

    Repeated headers keep the order of their values.
    """
    state.pad()
    state.write("headers: {\n")
    state.depth_down()
    for key, value in sorted(headers, key=lambda item: item[0]):
        state.pad()
        state.print_style(StyleToken.KEY, f'"{key}"')
        state.write(": ")
        state.dump(value)
        state.write(",\n")
    state.depth_up()
    state.pad()
    state.write("},\n")


def dump_http_response(state: "DumpState", resp: http.client.HTTPResponse) -> None:
    """
    Status line, headers and body of a response.

    Examples:
        &client.HTTPResponse{ // (0x7f3a5c2e1d90)
          status: 200,
          reason: "OK",
          version: "HTTP/1.1",
          chunked: False,
          length: None,
          headers: {
            "Content-Type": "text/plain; charset=utf-8",
          },
          body: "Hello World!",
        }
    """
    state.dump_struct_field("status", resp.status)
    state.dump_struct_field("reason", resp.reason)
    state.dump_struct_field("version", _HTTP_VERSIONS.get(resp.version, str(resp.version)))
    state.dump_struct_field("chunked", resp.chunked)
    state.dump_struct_field("length", resp.length)

    headers = resp.headers
    dump_http_headers(state, headers.items() if headers is not None else ())

    if resp.chunked and resp.length is None:
        state.add_comment("streamed")
        state.dump_struct_field("body", None)
        return

    content_type = headers.get("Content-Type", "") if headers is not None else ""
    if resp.length == 0:
        state.dump_struct_field("body", "")
    elif is_text_content(content_type):
        charset = headers.get_content_charset() if headers is not None else None
        _dump_body(state, _copy_response_body(resp), charset)
    else:
        state.dump_struct_field("body", BINARY_BODY)


def dump_http_request(state: "DumpState", req: Request) -> None:
    """
    URL, method, headers and body of a request.

    A file-like body is read and replaced with bytes when the content type is text-safe.
    Iterable bodies are sent chunked and are never consumed.
    """
    data = req.data
    content_type = req.get_header("Content-type", "")

    body: Any
    if data is None or (isinstance(data, (bytes, bytearray)) and not data):
        body = ""
    elif not is_text_content(content_type):
        body = BINARY_BODY
    elif isinstance(data, (bytes, bytearray)):
        body = bytes(data)
    elif callable(getattr(data, "read", None)):
        body = _copy_request_body(req)
    else:
        body = None

    data = req.data
    length = len(data) if isinstance(data, (bytes, bytearray)) else (0 if data is None else None)

    state.dump_struct_field("url", req.full_url)
    state.dump_struct_field("method", req.get_method())
    state.dump_struct_field("content_length", length)
    dump_http_headers(state, req.header_items())

    if body is None:
        state.add_comment("streamed")
        state.dump_struct_field("body", None)
    elif body is INVALID or isinstance(body, bytes):
        _dump_body(state, body, None)
    else:
        state.dump_struct_field("body", body)


def is_text_content(content_type: str) -> bool:
    """
    Whether a body of this content type can be shown as text.

    Examples:
        >>> is_text_content("text/html; charset=utf-8")
        True
        >>> is_text_content("application/problem+json")
        True
        >>> is_text_content("image/png")
        False
    """
    media = content_type.split(";", 1)[0].strip().lower()
    main, _, sub = media.partition("/")
    if not sub:
        return False
    if main == "text":
        return True
    return sub in _TEXT_SUBTYPES or sub.endswith(("+json", "+xml"))


# Private Methods ------------------------------------------------------------------------------------------------------

def _dump_body(state: "DumpState", data: Any, charset: str | None) -> None:
    if data is INVALID:
        state.add_comment("read failed")
        state.dump_struct_field("body", INVALID)
        return
    state.dump_struct_field("body", _decode(data, charset))


def _decode(data: bytes, charset: str | None) -> str:
    try:
        return data.decode(charset or "utf-8", "replace")
    except LookupError:
        return data.decode("utf-8", "replace")


def _copy_response_body(resp: http.client.HTTPResponse) -> Any:
    """Read the whole body and put an in-memory copy in place of the stream."""
    length = resp.length
    try:
        data = resp.read()
    except (OSError, ValueError, http.client.HTTPException) as e:
        _warn_read_failed(resp, e)
        return INVALID

    resp.fp = io.BytesIO(data)
    resp.length = length
    return data


def _copy_request_body(req: Request) -> Any:
    stream = req.data
    try:
        data = stream.read()
        close = getattr(stream, "close", None)
        if callable(close):
            close()
    except (OSError, ValueError) as e:
        _warn_read_failed(req, e)
        return INVALID

    if isinstance(data, str):
        data = data.encode("utf-8")
    req.data = data
    return data


def _warn_read_failed(message: Any, e: Exception) -> None:
    obj_type = type(message)
    warnings.warn(
        f"Failed to read body of {obj_type.__module__}.{obj_type.__name__}: {type(e).__name__}: {e}",
        RuntimeWarning,
        stacklevel=3,
    )


# Registry Entries -----------------------------------------------------------------------------------------------------

NETWORK_FORMATTERS = {
    http.client.HTTPResponse: dump_http_response,
    Request: dump_http_request,
}
