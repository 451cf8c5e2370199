"""
Data ingesters - gather the evidence a rule evaluates.

- rest: call a REST data source templated from the entity and rule params
- builtin: use the entity's own attributes, optionally narrowed to a path
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import BaseModel

from warden.datasources.rest import RestHandler
from warden.errors import RuleTypeError
from warden.models import BuiltinIngestConfig, Entity, RuleType

logger = logging.getLogger(__name__)


class IngestResult(BaseModel):
    """Evidence handed from the ingester to the evaluator."""
    object: Any = None


class Ingester(ABC):
    @abstractmethod
    async def ingest(self, entity: Entity, params: Dict[str, Any]) -> IngestResult:
        ...


class RestIngester(Ingester):
    """Fetch evidence from a REST endpoint."""

    def __init__(self, handler: RestHandler):
        self._handler = handler

    async def ingest(self, entity: Entity, params: Dict[str, Any]) -> IngestResult:
        if self._handler.input_schema is not None:
            self._handler.validate_args(params)

        # Rule params win over entity attributes with the same name
        args = {**entity.to_selector_dict(), **params}
        result = await self._handler.call(args)
        return IngestResult(object=result)


class BuiltinIngester(Ingester):
    """Use the entity itself as evidence."""

    def __init__(self, config: Optional[BuiltinIngestConfig]):
        self._path = config.path if config else None

    async def ingest(self, entity: Entity, params: Dict[str, Any]) -> IngestResult:
        data = entity.to_selector_dict()
        if self._path:
            data = _get_nested_value(data, self._path)
        return IngestResult(object=data)


def _get_nested_value(obj: Any, path: str) -> Any:
    """Get nested value from object using dot notation."""
    current = obj
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part)
        else:
            return None

        if current is None:
            return None

    return current


def new_rule_data_ingest(rule_type: RuleType) -> Ingester:
    """Build the ingester a rule type definition asks for."""
    ing = rule_type.definition.ingest

    if ing.type == "rest":
        if ing.rest is None:
            raise RuleTypeError("rest ingester requires a rest configuration")
        return RestIngester(RestHandler(ing.rest))

    if ing.type == "builtin":
        return BuiltinIngester(ing.builtin)

    raise RuleTypeError(f"unsupported ingest type: {ing.type}")
