"""Bearer token authentication for the HTTP transport.

When ``auth=`` is set on the ``FastMCP`` instance the library wires the
bearer middleware onto the MCP endpoint itself.
"""

import hmac

from fastmcp.server.auth import AccessToken, TokenVerifier

_MIN_TOKEN_LENGTH = 32


class BearerTokenVerifier(TokenVerifier):
    """Check incoming bearer tokens against the configured ``MCP_AUTH_TOKEN``.

    Args:
        token: The expected bearer token (at least 32 characters).

    Raises:
        ValueError: If *token* is empty or too short.
    """

    def __init__(self, token: str) -> None:
        if not token or len(token) < _MIN_TOKEN_LENGTH:
            raise ValueError(
                f"MCP auth token must be at least {_MIN_TOKEN_LENGTH} characters, "
                f"got {len(token) if token else 0}"
            )
        self._token = token

    async def verify_token(self, token: str) -> AccessToken | None:
        # Constant-time comparison
        if hmac.compare_digest(token, self._token):
            return AccessToken(token=token, client_id="tablebook-operator", scopes=[])
        return None
