"""
Bearer token authentication middleware.

The expected token is read from the request's host environment
(``ctx.env``) on every request, so rotating the secret needs no rebuild.
"""

import hmac
import logging
import re
from typing import Optional

from ..faults import ConfigMissingFault
from ..middleware import Handler, Middleware
from ..request import Request
from ..response import Response, Unauthorized

logger = logging.getLogger("perch.auth")

_BEARER = re.compile(r"^Bearer +([A-Za-z0-9._~+/-]+=*) *$")


def _challenge(realm: str, error: Optional[str] = None) -> str:
    value = f'Bearer realm="{realm}"'
    if error:
        value += f',error="{error}"'
    return value


def create_bearer_auth_middleware(
    env_name: str,
    *,
    realm: str = "",
    header_name: str = "authorization",
) -> Middleware:
    """
    Create a middleware requiring ``Authorization: Bearer <token>``.

    Responses:
        401 ``{"error": "Unauthorized"}`` when the header is missing or the
        token does not match; 400 when the header is not a bearer credential.

    Raises (per request):
        ConfigMissingFault: If ``env_name`` is not set in ``ctx.env``
    """

    async def bearer_auth(request: Request, ctx, next: Handler) -> Response:
        expected = ctx.env.get(env_name) if ctx.env else None
        if not expected:
            raise ConfigMissingFault(env_name)

        header = request.header(header_name)
        if header is None:
            logger.debug("Missing bearer credentials for %s %s", request.method, request.path)
            return Unauthorized(headers={"WWW-Authenticate": _challenge(realm)})

        match = _BEARER.match(header)
        if match is None:
            return Response.json(
                {"error": "Bad Request"},
                status=400,
                headers={"WWW-Authenticate": _challenge(realm, "invalid_request")},
            )

        if not hmac.compare_digest(match.group(1).encode(), str(expected).encode()):
            logger.info("Rejected bearer token for %s %s", request.method, request.path)
            return Unauthorized(headers={"WWW-Authenticate": _challenge(realm, "invalid_token")})

        return await next(request, ctx)

    return bearer_auth
