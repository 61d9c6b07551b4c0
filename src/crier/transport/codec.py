"""Transport codecs for the protocol Envelope.

Both transports carry the same Envelope but frame the auth tag differently:

Direct (line oriented)
    [AUTH:<token>\\n]<message>\\n

Relay (one blob per publish)
    [AUTH:<token>:]<message>
"""

from __future__ import annotations

from typing import BinaryIO, Optional

from ..protocol import fields
from ..protocol.envelope import Envelope
from .base import AuthError, ProtocolError


def _strip(line: bytes) -> bytes:
    if line.endswith(b"\r\n"):
        return line[:-2]
    if line.endswith(fields.EOL):
        return line[:-1]
    return line


def _text(line: bytes) -> str:
    line = _strip(line)

    try:
        return line.decode(fields.ENCODING)
    except UnicodeDecodeError as exc:
        raise ProtocolError(f"invalid {fields.ENCODING} text: {exc}") from exc


class LineCodec:
    """Newline-delimited framing used by the direct transport."""

    def encode(self, envelope: Envelope) -> bytes:
        lines = []
        if envelope.auth is not None:
            lines.append(fields.auth_line(envelope.auth))
        lines.append(envelope.message)

        return b"".join(line.encode(fields.ENCODING) + fields.EOL for line in lines)

    def decode(self, reader: BinaryIO, expected_auth: Optional[str] = None) -> Envelope:
        """Read at most two lines from *reader*.

        When *expected_auth* is set the first line must be exactly
        ``AUTH:<expected_auth>``; otherwise the message line is never read.
        Without it, the first line is the message even if it happens to
        start with ``AUTH:``.
        """

        if expected_auth is not None:
            # Compared as bytes: an undecodable first line is a failed auth,
            # not a malformed exchange.
            expected = fields.auth_line(expected_auth).encode(fields.ENCODING)
            line = reader.readline()
            if not line or _strip(line) != expected:
                raise AuthError("auth failed")

        line = reader.readline()
        if not line:
            raise ProtocolError("connection closed before message line")

        try:
            return Envelope(expected_auth, _text(line))
        except ValueError as exc:
            raise ProtocolError(str(exc)) from exc


class PayloadCodec:
    """Single-blob framing used by the relay transport."""

    def encode(self, envelope: Envelope) -> bytes:
        body = envelope.message
        if envelope.auth is not None:
            body = fields.auth_prefix(envelope.auth) + body
        return body.encode(fields.ENCODING)

    def decode(self, body: bytes, expected_auth: Optional[str] = None) -> Envelope:
        try:
            text = body.decode(fields.ENCODING)
        except UnicodeDecodeError as exc:
            raise ProtocolError(f"invalid {fields.ENCODING} payload: {exc}") from exc

        if expected_auth is not None:
            # Fixed prefix match: a token containing ':' is compared as-is.
            prefix = fields.auth_prefix(expected_auth)
            if not text.startswith(prefix):
                raise AuthError("auth failed")
            text = text[len(prefix):]

        try:
            return Envelope(expected_auth, text)
        except ValueError as exc:
            raise ProtocolError(str(exc)) from exc


line_codec = LineCodec()
payload_codec = PayloadCodec()
