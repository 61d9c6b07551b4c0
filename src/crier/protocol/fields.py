"""Canonical wire vocabulary shared by both transports."""

# Prefix of the auth tag. On the direct transport it forms a whole line
# (AUTH:<token>); on the relay transport it prefixes the payload and is
# closed by a second colon (AUTH:<token>:<message>).
AUTH = "AUTH:"

# Single-line acknowledgments written back by a direct listener.
OK = "OK"
ERR_AUTH = "ERR:AUTH"

# Line terminator for the direct transport.
EOL = b"\n"

ENCODING = "utf-8"


def auth_line(token: str) -> str:
    return AUTH + token


def auth_prefix(token: str) -> str:
    return AUTH + token + ":"
