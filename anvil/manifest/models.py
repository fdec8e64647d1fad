"""Pydantic v2 models for template and service-provider manifests.

Defines the complete data model for ``anvil.yaml`` documents: the base
template manifest (variables, features, hooks, service definitions,
composition settings, presets) and the per-provider service manifest
(dependencies, environment variables, configuration prompts).  Semantic
checks run inside model validators, so constructing a model *is* validating
it.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

import semver
from pydantic import BaseModel, ConfigDict, Field, model_validator

from anvil.errors import VariableError


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ServiceCategory(str, Enum):
    """Service categories a template can compose.

    The member value is the canonical lower-case key used for directory
    names, selection contexts and render-context namespaces.  ``key`` and
    ``from_key`` are the only conversions between the two forms.
    """
    AUTH = "auth"
    PAYMENTS = "payments"
    DATABASE = "database"
    AI = "ai"
    API = "api"
    DEPLOYMENT = "deployment"
    MONITORING = "monitoring"
    EMAIL = "email"
    STORAGE = "storage"

    @classmethod
    def _missing_(cls, value: object) -> Optional["ServiceCategory"]:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None

    @property
    def key(self) -> str:
        return self.value

    @classmethod
    def from_key(cls, key: str) -> "ServiceCategory":
        return cls(key)


# At most one selection may exist per category in this set.
EXCLUSIVE_CATEGORIES: dict[ServiceCategory, str] = {
    ServiceCategory.AUTH: "auth provider",
    ServiceCategory.API: "API pattern",
}


class FileMergingStrategy(str, Enum):
    """How same-path files from different sources are combined."""
    APPEND = "append"
    MERGE = "merge"
    OVERRIDE = "override"
    SKIP = "skip"


class DependencyResolution(str, Enum):
    """Dependency-resolution mode.  Informational only."""
    AUTO = "auto"
    MANUAL = "manual"
    STRICT = "strict"


class CompatibilityRuleType(str, Enum):
    REQUIRES = "requires"
    CONFLICTS_WITH = "conflicts_with"
    RECOMMENDS_AGAINST = "recommends_against"
    REQUIRES_LANGUAGE = "requires_language"
    REQUIRES_PLATFORM = "requires_platform"


class ServicePromptType(str, Enum):
    """Input type of a provider configuration prompt."""
    TEXT = "text"
    BOOLEAN = "boolean"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    PASSWORD = "password"

    @classmethod
    def _missing_(cls, value: object) -> Optional["ServicePromptType"]:
        aliases = {"secret": cls.PASSWORD, "multi-select": cls.MULTI_SELECT}
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def parse_semver(value: str, field_name: str) -> semver.Version:
    """Parse *value* as a semantic version (``MAJOR.MINOR.PATCH[-pre][+build]``).

    Raises:
        ValueError: naming *field_name* when the string is not a version.
    """
    try:
        return semver.Version.parse(value)
    except (TypeError, ValueError):
        raise ValueError(
            f"Invalid {field_name} format: {value!r} (expected MAJOR.MINOR.PATCH)"
        ) from None


def _require_text(value: str, message: str) -> str:
    if not value or not value.strip():
        raise ValueError(message)
    return value


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------

class StringType(BaseModel):
    type: Literal["string"] = "string"
    min_length: int = Field(default=0, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)


class BooleanType(BaseModel):
    type: Literal["boolean"] = "boolean"


class ChoiceType(BaseModel):
    type: Literal["choice"] = "choice"
    options: list[str] = Field(default_factory=list)


class NumberType(BaseModel):
    type: Literal["number"] = "number"
    min: Optional[int] = None
    max: Optional[int] = None


VariableType = Annotated[
    Union[StringType, BooleanType, ChoiceType, NumberType],
    Field(discriminator="type"),
]


class TemplateVariable(BaseModel):
    """A user-supplied value the template can reference while rendering."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Variable name as referenced in templates")
    var_type: VariableType = Field(..., alias="type", description="Declared type and bounds")
    prompt: str = Field(..., description="Human prompt text")
    default: Any = Field(default=None, description="Optional default value")
    required: bool = Field(default=False)

    @model_validator(mode="after")
    def _check_bounds(self) -> "TemplateVariable":
        _require_text(self.name, "Variable name cannot be empty")
        _require_text(self.prompt, f"Variable '{self.name}' must have a prompt")
        vt = self.var_type
        if isinstance(vt, StringType):
            if vt.max_length is not None and vt.min_length > vt.max_length:
                raise ValueError(
                    f"Variable '{self.name}': min_length cannot be greater than max_length"
                )
        elif isinstance(vt, ChoiceType):
            if not vt.options:
                raise ValueError(
                    f"Variable '{self.name}': choice type must have at least one option"
                )
        elif isinstance(vt, NumberType):
            if vt.min is not None and vt.max is not None and vt.min > vt.max:
                raise ValueError(f"Variable '{self.name}': min cannot be greater than max")
        return self

    @property
    def type_name(self) -> str:
        return self.var_type.type

    def validate_value(self, value: Any) -> None:
        """Check *value* against the declared type and bounds.

        Raises:
            VariableError: If the value has the wrong type or is out of bounds.
        """
        vt = self.var_type
        if isinstance(vt, StringType) and isinstance(value, str):
            if len(value) < vt.min_length:
                raise VariableError(
                    self.name, f"String too short (minimum {vt.min_length} characters)"
                )
            if vt.max_length is not None and len(value) > vt.max_length:
                raise VariableError(
                    self.name, f"String too long (maximum {vt.max_length} characters)"
                )
            return
        if isinstance(vt, BooleanType) and isinstance(value, bool):
            return
        if (
            isinstance(vt, NumberType)
            and isinstance(value, (int, float))
            and not isinstance(value, bool)
        ):
            if vt.min is not None and value < vt.min:
                raise VariableError(self.name, f"Number too small (minimum {vt.min})")
            if vt.max is not None and value > vt.max:
                raise VariableError(self.name, f"Number too large (maximum {vt.max})")
            return
        if isinstance(vt, ChoiceType) and isinstance(value, str):
            if value not in vt.options:
                raise VariableError(
                    self.name,
                    f"Invalid choice '{value}'. Valid options: {', '.join(vt.options)}",
                )
            return
        raise VariableError(
            self.name,
            f"Value type mismatch for variable type {vt.type} (got {type(value).__name__})",
        )


# ---------------------------------------------------------------------------
# Features & hooks
# ---------------------------------------------------------------------------

class Feature(BaseModel):
    """An optional template feature the caller can switch on."""
    name: str
    description: str
    enabled_when: Optional[str] = None
    dependencies: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_text(self) -> "Feature":
        _require_text(self.name, "Feature name cannot be empty")
        _require_text(self.description, f"Feature '{self.name}' must have a description")
        return self


class HookCommand(BaseModel):
    command: str
    working_dir: Optional[str] = None
    condition: Optional[str] = None
    env: dict[str, str] = Field(default_factory=dict)


class Hooks(BaseModel):
    """Commands declared around generation.  Parsed, never executed here."""
    pre_generate: Optional[list[HookCommand]] = None
    post_generate: Optional[list[HookCommand]] = None


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

class CompatibilityRule(BaseModel):
    rule_type: CompatibilityRuleType
    target_service: str = Field(..., description="'category' or 'category/provider'")
    condition: str = Field(default="")
    message: str = Field(default="")


class ServiceDefinition(BaseModel):
    """A service slot declared by a template (e.g. 'auth', one of clerk/auth0)."""

    name: str
    category: ServiceCategory
    prompt: str
    options: list[str] = Field(default_factory=list, description="Valid provider names")
    required: bool = False
    default: Optional[str] = None
    dependencies: Optional[list[str]] = Field(
        default=None, description="Categories that must also be selected"
    )
    conflicts: Optional[list[str]] = Field(
        default=None, description="Categories that must not be selected alongside"
    )
    language_requirements: Optional[list[str]] = None
    platform_requirements: Optional[list[str]] = None
    compatibility_rules: Optional[list[CompatibilityRule]] = None


class ServiceSpec(BaseModel):
    """One (category, provider, config) entry inside a preset."""
    category: ServiceCategory
    provider: str
    config: dict[str, Any] = Field(default_factory=dict)


class ServiceCombination(BaseModel):
    """A named preset of service selections."""
    name: str
    description: str
    services: list[ServiceSpec] = Field(default_factory=list)
    recommended: bool = False
    tags: Optional[list[str]] = None


class ConditionalFile(BaseModel):
    path: str = Field(..., description="Exact output path the condition applies to")
    condition: str
    source_service: Optional[str] = None


class CompositionConfig(BaseModel):
    file_merging_strategy: FileMergingStrategy = FileMergingStrategy.MERGE
    dependency_resolution: DependencyResolution = DependencyResolution.AUTO
    conditional_files: list[ConditionalFile] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Template manifest
# ---------------------------------------------------------------------------

DEFAULT_MIN_ANVIL_VERSION = "0.1.0"


class TemplateManifest(BaseModel):
    """Manifest of a base template (``templates/<name>/anvil.yaml``)."""

    name: str
    description: str
    version: str
    variables: list[TemplateVariable] = Field(default_factory=list)
    features: list[Feature] = Field(default_factory=list)
    hooks: Optional[Hooks] = None
    min_anvil_version: str = DEFAULT_MIN_ANVIL_VERSION
    services: list[ServiceDefinition] = Field(default_factory=list)
    composition: Optional[CompositionConfig] = None
    service_combinations: list[ServiceCombination] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_manifest(self) -> "TemplateManifest":
        _require_text(self.name, "Template name cannot be empty")
        _require_text(self.description, "Template description cannot be empty")
        parse_semver(self.version, "version")
        parse_semver(self.min_anvil_version, "min_anvil_version")
        return self

    def get_variable(self, name: str) -> Optional[TemplateVariable]:
        return next((v for v in self.variables if v.name == name), None)

    def get_feature(self, name: str) -> Optional[Feature]:
        return next((f for f in self.features if f.name == name), None)

    def get_service(self, category: ServiceCategory) -> Optional[ServiceDefinition]:
        return next((s for s in self.services if s.category == category), None)

    def get_combination(self, name: str) -> Optional[ServiceCombination]:
        return next((c for c in self.service_combinations if c.name == name), None)


# ---------------------------------------------------------------------------
# Service manifest
# ---------------------------------------------------------------------------

class ServiceDependencies(BaseModel):
    """Package dependencies per target ecosystem."""
    npm: Optional[list[str]] = None
    cargo: Optional[dict[str, str]] = None
    go: Optional[list[str]] = None
    python: Optional[list[str]] = None


class EnvironmentVariable(BaseModel):
    name: str
    description: str
    required: bool = False
    default: Optional[str] = None


class ServiceFile(BaseModel):
    path: str
    description: str


class ServicePrompt(BaseModel):
    """A configuration question a provider asks the user."""

    name: str
    prompt: str
    prompt_type: ServicePromptType
    required: bool = False
    default: Any = None
    options: Optional[list[str]] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check_options(self) -> "ServicePrompt":
        if self.prompt_type in (ServicePromptType.SELECT, ServicePromptType.MULTI_SELECT):
            if not self.options:
                raise ValueError(
                    f"Prompt '{self.name}': {self.prompt_type.value} prompt must list options"
                )
        return self


class ServiceManifest(BaseModel):
    """Manifest of a service provider (``shared/<category>/<provider>/anvil.yaml``)."""

    name: str
    description: str
    version: str = "0.1.0"
    category: ServiceCategory
    dependencies: Optional[ServiceDependencies] = None
    environment_variables: list[EnvironmentVariable] = Field(default_factory=list)
    files: list[ServiceFile] = Field(default_factory=list)
    configuration_prompts: list[ServicePrompt] = Field(default_factory=list)
    language_requirements: Optional[list[str]] = None
    compatibility_rules: Optional[list[CompatibilityRule]] = None

    @model_validator(mode="after")
    def _check_manifest(self) -> "ServiceManifest":
        _require_text(self.name, "Service name cannot be empty")
        _require_text(self.description, f"Service '{self.name}' must have a description")
        parse_semver(self.version, "version")
        return self
