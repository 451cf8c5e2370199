"""Shared data models: rule types, profiles, entities and evaluation outcomes."""

from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EntityType(str, Enum):
    """Kinds of objects a rule can be evaluated against."""
    REPOSITORY = "repository"
    PULL_REQUEST = "pull_request"
    ARTIFACT = "artifact"

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["EntityType"]:
        if not value:
            return None
        try:
            return cls(value.lower())
        except ValueError:
            return None


# =============================================================================
# Entities
# =============================================================================

class Entity(BaseModel):
    """Base class for evaluated entities."""
    entity_type: ClassVar[EntityType]

    provider: str = "github"
    properties: Dict[str, Any] = {}

    def to_selector_dict(self) -> Dict[str, Any]:
        """Attribute view used by selectors. Always a fresh copy."""
        return self.model_dump(mode="json")


class Repository(Entity):
    entity_type: ClassVar[EntityType] = EntityType.REPOSITORY

    owner: str
    name: str
    is_private: bool = False
    is_fork: bool = False
    is_archived: bool = False
    default_branch: Optional[str] = None


class PullRequest(Entity):
    entity_type: ClassVar[EntityType] = EntityType.PULL_REQUEST

    repo_owner: str
    repo_name: str
    number: int
    author: Optional[str] = None


class Artifact(Entity):
    entity_type: ClassVar[EntityType] = EntityType.ARTIFACT

    owner: str
    repository: str
    name: str
    type: str = "container"
    versions: List[str] = []


def repo_coordinates(entity: Entity) -> tuple[str, str]:
    """Owner and repository name an entity lives in."""
    if isinstance(entity, Repository):
        return entity.owner, entity.name
    if isinstance(entity, PullRequest):
        return entity.repo_owner, entity.repo_name
    if isinstance(entity, Artifact):
        return entity.owner, entity.repository
    raise TypeError(f"expected repository, pull request or artifact, got {type(entity).__name__}")


# =============================================================================
# Rule types
# =============================================================================

class RestDataSourceDefinition(BaseModel):
    """Templated description of a REST request used to fetch evidence."""
    endpoint: str
    method: Optional[str] = None
    headers: Dict[str, str] = {}
    body_str: Optional[str] = None
    body_obj: Optional[Dict[str, Any]] = None
    parse: Optional[str] = None  # "json" or raw
    input_schema: Optional[Dict[str, Any]] = None


class BuiltinIngestConfig(BaseModel):
    """Ingest the entity itself, optionally narrowed to a dotted path."""
    path: Optional[str] = None


class IngestConfig(BaseModel):
    type: str
    rest: Optional[RestDataSourceDefinition] = None
    builtin: Optional[BuiltinIngestConfig] = None


class CelEvalConfig(BaseModel):
    expression: str
    skip_if: Optional[str] = None


class EvalConfig(BaseModel):
    type: str
    cel: Optional[CelEvalConfig] = None


class RestRemediateConfig(BaseModel):
    method: str = "PATCH"
    endpoint: str
    body: Optional[str] = None


class RemediateConfig(BaseModel):
    type: str
    rest: Optional[RestRemediateConfig] = None


class SecurityAdvisoryConfig(BaseModel):
    severity: str = "medium"


class AlertConfig(BaseModel):
    type: str
    security_advisory: Optional[SecurityAdvisoryConfig] = None


class RuleTypeDefinition(BaseModel):
    """Type-specific definition blob of a rule type."""
    in_entity: str = EntityType.REPOSITORY.value
    rule_schema: Dict[str, Any] = {}
    param_schema: Optional[Dict[str, Any]] = None
    ingest: IngestConfig
    eval: EvalConfig
    remediate: Optional[RemediateConfig] = None
    alert: Optional[AlertConfig] = None


class RuleTypeContext(BaseModel):
    provider: str
    organization: Optional[str] = None
    group: Optional[str] = None


class RuleType(BaseModel):
    """A reusable, schema-validated check definition."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Optional[str] = None
    name: str
    context: RuleTypeContext
    description: str = ""
    guidance: str = ""
    definition: RuleTypeDefinition = Field(alias="def")


# =============================================================================
# Profiles
# =============================================================================

class Rule(BaseModel):
    """A rule type instantiated inside a profile."""
    model_config = ConfigDict(populate_by_name=True)

    type: str
    name: Optional[str] = None
    definition: Dict[str, Any] = Field(default_factory=dict, alias="def")
    params: Dict[str, Any] = {}


class ProfileSelector(BaseModel):
    entity: Optional[str] = None  # None applies to every entity type
    selector: str
    description: Optional[str] = None


class Profile(BaseModel):
    """User configuration: which rules apply, and how actions behave."""
    name: str
    remediate: Optional[str] = "off"
    alert: Optional[str] = "on"
    repository: List[Rule] = []
    pull_request: List[Rule] = []
    artifact: List[Rule] = []
    selection: List[ProfileSelector] = []

    def rules_for(self, entity_type: EntityType) -> List[Rule]:
        return list(getattr(self, entity_type.value))


# =============================================================================
# Evaluation outcomes
# =============================================================================

class EvalOutcome(str, Enum):
    """Result classes an evaluator can produce."""
    PASS = "pass"
    VIOLATION = "violation"
    SKIPPED = "skipped"
    SKIPPED_SILENTLY = "skipped_silently"


class EvaluationResult(BaseModel):
    """Outcome of evaluating a policy against ingested evidence."""
    model_config = ConfigDict(frozen=True)

    outcome: EvalOutcome
    message: str = ""

    @classmethod
    def passed(cls) -> "EvaluationResult":
        return cls(outcome=EvalOutcome.PASS)

    @classmethod
    def violation(cls, message: str) -> "EvaluationResult":
        return cls(outcome=EvalOutcome.VIOLATION, message=message)

    @classmethod
    def skipped(cls, message: str = "evaluation skipped") -> "EvaluationResult":
        return cls(outcome=EvalOutcome.SKIPPED, message=message)

    @classmethod
    def skipped_silently(cls, message: str = "evaluation skipped silently") -> "EvaluationResult":
        return cls(outcome=EvalOutcome.SKIPPED_SILENTLY, message=message)

    @property
    def is_pass(self) -> bool:
        return self.outcome == EvalOutcome.PASS
