"""
REST data source handler.

Fetches evidence over HTTP from a templated request description:
- endpoint is an RFC 6570 URI template expanded from the call arguments
- arguments are validated against the data source input schema
- responses are read under a hard size cap and returned with their status
  code, so the evaluator can inspect non-2xx answers
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx
from uritemplate import URITemplate

from warden.errors import (
    RestCallError,
    SchemaError,
    SchemaUpdateError,
    TemplateExpansionError,
    WardenError,
)
from warden.models import RestDataSourceDefinition
from warden.schemas import compile_schema, validate_against_schema, validate_schema_update

logger = logging.getLogger(__name__)

# Read at most 1MB of a response body
MAX_BYTES_LIMIT = 1 << 20

# Seconds
REQUEST_TIMEOUT = 5.0

HTTP_METHODS = {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"}


def _http_method_from_string(method: Optional[str], default: str = "GET") -> str:
    """Normalize an HTTP method name, falling back to the default."""
    if not method:
        return default
    upper = method.upper()
    return upper if upper in HTTP_METHODS else default


def _parse_request_body(definition: RestDataSourceDefinition) -> str:
    """Precompute the request body. Structured bodies are serialized once."""
    if definition.body_obj is not None:
        try:
            return json.dumps(definition.body_obj)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cannot serialize REST request body, sending none: {e}")
            return ""
    return definition.body_str or ""


class RestHandler:
    """Issues the REST call described by a data source definition."""

    def __init__(self, definition: RestDataSourceDefinition):
        if definition is None:
            raise WardenError("rest data source handler definition is nil")

        # input schema may be unset
        self.raw_input_schema: Optional[Dict[str, Any]] = definition.input_schema
        self.input_schema = compile_schema(definition.input_schema, allow_none=True)
        self.endpoint_template = URITemplate(definition.endpoint)
        self.method = _http_method_from_string(definition.method)
        self.headers: Dict[str, str] = dict(definition.headers)
        self.body = _parse_request_body(definition)
        self.parse = definition.parse or ""

    def validate_args(self, args: Any) -> None:
        """
        Validate call arguments against the input schema.

        Raises:
            SchemaError: If no input schema was declared
            WardenError: If args is not a mapping
            SchemaValidationError: If args violate the schema
        """
        if self.input_schema is None:
            raise SchemaError("input schema cannot be nil")
        if not isinstance(args, Mapping):
            raise WardenError("args is not a map")
        validate_against_schema(self.input_schema, dict(args))

    def validate_update(self, candidate: Any) -> None:
        """
        Check that a new input schema is a compatible evolution of the current one.

        Accepts a plain mapping or a structured document exposing model_dump().
        """
        if candidate is None:
            raise SchemaUpdateError("update schema cannot be nil")

        if isinstance(candidate, Mapping):
            new_schema = dict(candidate)
        elif hasattr(candidate, "model_dump"):
            new_schema = candidate.model_dump(exclude_none=True)
        else:
            raise SchemaUpdateError("invalid type")

        try:
            compile_schema(new_schema)
        except SchemaError as e:
            raise SchemaUpdateError(f"update validation failed due to invalid schema: {e}") from e

        validate_schema_update(self.raw_input_schema, new_schema)

    def expand_endpoint(self, args: Mapping[str, Any]) -> str:
        """Expand the endpoint template. Every template variable must have a value."""
        # unset values are dropped by expansion, so None counts as missing
        missing = sorted(name for name in self.endpoint_template.variable_names if args.get(name) is None)
        if missing:
            raise TemplateExpansionError(
                f"cannot expand endpoint template, missing variables: {', '.join(missing)}",
                {"missing": missing},
            )
        try:
            return self.endpoint_template.expand(dict(args))
        except (TypeError, ValueError, KeyError) as e:
            raise TemplateExpansionError(f"cannot expand endpoint template: {e}") from e

    async def call(self, args: Any) -> Dict[str, Any]:
        """
        Perform the REST call.

        Args:
            args: Template variables for the endpoint

        Returns:
            {"status_code": int, "body": parsed JSON or raw string}
        """
        if not isinstance(args, Mapping):
            raise WardenError("args is not a map")

        url = self.expand_endpoint(args)
        logger.debug(f"REST data source call: {self.method} {url}")

        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
            try:
                async with client.stream(
                    self.method,
                    url,
                    headers=self.headers,
                    content=self.body or None,
                ) as response:
                    status_code = response.status_code
                    raw = await _read_limited(response, MAX_BYTES_LIMIT)
            except httpx.RequestError as e:
                raise RestCallError(f"REST call to {url} failed: {e}") from e

        body = self.parse_response_body(raw)
        return {"status_code": status_code, "body": body}

    def parse_response_body(self, raw: bytes) -> Any:
        if self.parse == "json":
            text = raw.decode("utf-8", errors="replace").lstrip()
            try:
                # Only the first JSON value counts, trailing data is ignored
                data, _ = json.JSONDecoder().raw_decode(text)
            except ValueError as e:
                raise RestCallError(f"cannot decode json: {e}") from e
            return data

        return raw.decode("utf-8", errors="replace")


async def _read_limited(response: httpx.Response, limit: int) -> bytes:
    """Read at most `limit` bytes of the response body, dropping the rest."""
    buf = bytearray()
    async for chunk in response.aiter_bytes():
        buf.extend(chunk[: limit - len(buf)])
        if len(buf) >= limit:
            break
    return bytes(buf)


def new_handler_from_def(definition: Optional[RestDataSourceDefinition]) -> RestHandler:
    """Build a handler, failing on a missing definition."""
    if definition is None:
        raise WardenError("rest data source handler definition is nil")
    return RestHandler(definition)
