"""
Profile selectors.

A selector is a CEL expression over entity attributes, e.g.

    repository.name != 'sandbox' && !repository.is_fork

Selectors scoped to an entity type see the entity under its type name
(`repository`, `pull_request`, `artifact`). Every selector also sees it as
`entity`, which is what untyped selectors should use.

Expressions are compiled once when the Selection is built; a Selection is
then reused for any number of select() calls.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

import celpy
from celpy import celtypes
from celpy.adapter import json_to_cel
from celpy.celparser import CELParseError
from celpy.evaluation import CELEvalError

from warden.errors import ResultUnknownError, SelectorCompileError, SelectorEvaluationError
from warden.models import Entity, EntityType, ProfileSelector

logger = logging.getLogger(__name__)

GENERIC_ENTITY_VAR = "entity"

_ROOT_VARS = "|".join([GENERIC_ENTITY_VAR] + [e.value for e in EntityType])
_PATH_RE = re.compile(rf"\b(?:{_ROOT_VARS})((?:\.[A-Za-z_][A-Za-z0-9_]*)+)")
_STRING_RE = re.compile(r"'(?:\\.|[^'\\])*'" + r'|"(?:\\.|[^"\\])*"')


@dataclass
class _SelectOptions:
    unknown_paths: List[str] = field(default_factory=list)


SelectOption = Callable[[_SelectOptions], None]


def with_unknown_paths(*paths: str) -> SelectOption:
    """
    Declare entity attribute paths as not yet known (e.g. properties that have
    not been fetched). Selectors that reference them raise ResultUnknownError
    instead of being evaluated against missing data.
    """
    def apply(opts: _SelectOptions) -> None:
        opts.unknown_paths.extend(p.strip(".") for p in paths if p)
    return apply


@dataclass(frozen=True)
class _CompiledSelector:
    source: ProfileSelector
    program: Any
    paths: Tuple[str, ...]

    @property
    def reason(self) -> str:
        return self.source.description or self.source.selector


def _overlaps(path: str, unknown: str) -> bool:
    """True if one dotted path is a prefix of the other."""
    a, b = path.split("."), unknown.split(".")
    n = min(len(a), len(b))
    return a[:n] == b[:n]


class Selection:
    """Compiled selectors for one entity type."""

    def __init__(self, entity_type: EntityType, compiled: Sequence[_CompiledSelector]):
        self.entity_type = entity_type
        self._compiled = tuple(compiled)

    def __len__(self) -> int:
        return len(self._compiled)

    def select(self, entity: Entity, *options: SelectOption) -> Tuple[bool, str]:
        """
        Evaluate every selector against the entity.

        Returns:
            (True, "") if the entity is selected, otherwise (False, reason)
            where reason identifies the selector that excluded it

        Raises:
            ResultUnknownError: If a selector needs an attribute declared unknown
            SelectorEvaluationError: If a selector fails to evaluate
        """
        if entity.entity_type != self.entity_type:
            raise SelectorEvaluationError(
                f"selection built for {self.entity_type.value} cannot select {entity.entity_type.value}"
            )

        opts = _SelectOptions()
        for option in options:
            option(opts)

        # fresh conversion per call, the entity itself is never touched
        cel_entity = json_to_cel(entity.to_selector_dict())
        activation = {GENERIC_ENTITY_VAR: cel_entity, self.entity_type.value: cel_entity}

        for sel in self._compiled:
            unknown = sorted({u for u in opts.unknown_paths for p in sel.paths if _overlaps(p, u)})
            if unknown:
                raise ResultUnknownError(unknown)

            try:
                result = sel.program.evaluate(activation)
            except CELEvalError as e:
                raise SelectorEvaluationError(f"error evaluating selector '{sel.source.selector}': {e}") from e
            if isinstance(result, CELEvalError):
                raise SelectorEvaluationError(f"error evaluating selector '{sel.source.selector}': {result}")

            if not isinstance(result, (celtypes.BoolType, bool)):
                raise SelectorEvaluationError(
                    f"selector '{sel.source.selector}' did not evaluate to a boolean"
                )

            if not bool(result):
                logger.debug(f"Entity excluded by selector: {sel.source.selector}")
                return False, sel.reason

        return True, ""


class SelectionBuilder:
    """Compiles profile selectors into reusable selections."""

    def __init__(self):
        self._env = celpy.Environment()

    def _compile(self, selector: ProfileSelector) -> _CompiledSelector:
        try:
            ast = self._env.compile(selector.selector)
            program = self._env.program(ast)
        except CELParseError as e:
            raise SelectorCompileError(f"invalid selector '{selector.selector}': {e}") from e

        # string literals are not attribute references
        code = _STRING_RE.sub("''", selector.selector)
        paths = tuple(m.group(1).lstrip(".") for m in _PATH_RE.finditer(code))
        return _CompiledSelector(source=selector, program=program, paths=paths)

    def check_selector(self, selector: ProfileSelector) -> None:
        """Compile a single selector to check its entity type and syntax."""
        if selector.entity and EntityType.from_string(selector.entity) is None:
            raise SelectorCompileError(f"unknown entity type '{selector.entity}' in selector")
        self._compile(selector)

    def new_selection(self, entity_type: EntityType, selectors: Sequence[ProfileSelector]) -> Selection:
        """
        Build the selection for one entity type out of a profile's selectors.

        Selectors for other entity types are ignored; untyped selectors apply
        to every entity type.

        Raises:
            SelectorCompileError: If any relevant selector is invalid
        """
        compiled = []
        for selector in selectors:
            sel_type: Optional[EntityType] = EntityType.from_string(selector.entity)
            if selector.entity and sel_type is None:
                raise SelectorCompileError(f"unknown entity type '{selector.entity}' in selector")
            if sel_type is not None and sel_type != entity_type:
                continue
            compiled.append(self._compile(selector))

        return Selection(entity_type, compiled)
