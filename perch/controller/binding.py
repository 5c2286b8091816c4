"""
Parameter Binder

Turns a request into handler arguments:

1. ``validate_request()`` runs the method-level schemas (headers, query,
   body) and stores results in ``ctx.valid``.
2. ``bind_arguments()`` extracts each bound argument, validates it against
   its own schema, and lays the values out by ``arg_index``.

Both raise ``ValidationFault`` on the first failure. The validation
middleware produced by ``create_validation_middleware()`` runs both and turns
that fault into a 400 response, so the handler is never invoked.
"""

import logging
from typing import Any, Dict, List, Optional

from ..faults import ValidationFault
from ..request import InvalidJSON, Request
from ..response import Response
from ..validation import SchemaValidationError, validate
from .base import RequestCtx
from .metadata import MethodDescriptor, ParamBinding, ParamSource, ValidationSchemas

logger = logging.getLogger("perch.binding")


async def read_source(ctx: RequestCtx, source: ParamSource, name: Optional[str] = None) -> Any:
    """
    Extract the raw value for ``source``.

    Whole-location sources give a plain dict; single-value sources give the
    named value or ``None``.
    """
    request = ctx.request

    if source is ParamSource.BODY:
        try:
            return await request.json()
        except InvalidJSON as exc:
            raise ValidationFault(
                "body",
                [{"path": "", "message": exc.message, "type": "json_invalid"}],
            ) from exc

    if source is ParamSource.QUERY:
        return request.query_params.to_dict()
    if source is ParamSource.PARAM:
        return dict(ctx.params)
    if source is ParamSource.HEADER:
        return request.headers.to_dict()

    if source is ParamSource.QUERY_SINGLE:
        return request.query_param(name)
    if source is ParamSource.PARAM_SINGLE:
        return ctx.params.get(name)
    if source is ParamSource.HEADER_SINGLE:
        return request.header(name)

    raise ValueError(f"Unknown parameter source: {source!r}")


_WHOLE_SOURCES = {
    "headers": ParamSource.HEADER,
    "query": ParamSource.QUERY,
    "body": ParamSource.BODY,
}


def _check(schema: Any, raw: Any, location: str, name: Optional[str] = None) -> Any:
    try:
        return validate(schema, raw)
    except SchemaValidationError as exc:
        raise ValidationFault(location, exc.issues, name=name) from exc


async def validate_request(ctx: RequestCtx, schemas: ValidationSchemas) -> Dict[str, Any]:
    """
    Validate method-level schemas in the order headers, query, body.

    Returns:
        ``ctx.valid`` after validation
    """
    for location, schema in schemas.items():
        raw = await read_source(ctx, _WHOLE_SOURCES[location])
        ctx.valid[location] = _check(schema, raw, location)
    return ctx.valid


async def bind_value(ctx: RequestCtx, binding: ParamBinding) -> Any:
    """Extract and validate one binding."""
    location = binding.source.location

    if binding.schema is None and not binding.source.is_single and location in ctx.valid:
        return ctx.valid[location]

    raw = await read_source(ctx, binding.source, binding.name)
    if binding.schema is None:
        return raw
    return _check(binding.schema, raw, location, binding.name)


async def bind_arguments(ctx: RequestCtx, descriptor: MethodDescriptor) -> List[Any]:
    """
    Build the positional handler arguments (``self`` excluded).

    Unbound positions up to the highest bound index receive ``ctx``.
    """
    bindings = descriptor.ordered_bindings()
    size = bindings[-1].arg_index + 1 if bindings else 1
    args: List[Any] = [ctx] * size

    for binding in bindings:
        args[binding.arg_index] = await bind_value(ctx, binding)

    return args


def create_validation_middleware(descriptor: MethodDescriptor):
    """
    Middleware validating the request and preparing ``ctx.args``.

    A ValidationFault becomes a 400 JSON response.
    """

    async def validation_middleware(request: Request, ctx: RequestCtx, next) -> Response:
        try:
            await validate_request(ctx, descriptor.validation_schemas)
            ctx.args = await bind_arguments(ctx, descriptor)
        except ValidationFault as fault:
            logger.info(
                "Validation failed for %s %s at %s",
                request.method, request.path, fault.location,
            )
            return Response.json(fault.to_response_body(), status=400)
        return await next(request, ctx)

    validation_middleware.__name__ = f"validate_{descriptor.name}"
    return validation_middleware
