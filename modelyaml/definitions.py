"""Data model for model.yaml definitions and resolution results.

Field names are snake_case; every model also accepts (and dumps, with
``by_alias=True``) the camelCase spelling used in model.yaml documents.

Sources, effects and conditions are open sets keyed by their ``type`` tag.
Tags this package does not know parse into ``Unknown*`` records that keep the
raw payload, so newer documents still load.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    StrictBool,
    StrictStr,
    Tag,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

# Sectioned config form: {operation: {fields: [...]}, load: {fields: [...]}}
CONFIG_SECTIONS = ("operation", "load")

TriState = Union[bool, Literal["mixed"]]


class _Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        protected_namespaces=(),
    )


class _OpenRecord(_Document):
    """Record for a ``type`` tag this package does not recognise."""

    model_config = ConfigDict(extra="allow")

    type: str

    @property
    def payload(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


def _tagged(known: set[str]):
    """Build a discriminator that routes unrecognised tags to ``unknown``."""

    def discriminate(value: Any) -> str:
        if isinstance(value, Mapping):
            tag = value.get("type")
        else:
            tag = getattr(value, "type", None)
        return tag if tag in known else "unknown"

    return Discriminator(discriminate)


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class SourceVariant(_Document):
    """One downloadable variant (quantization / size) of a source."""

    name: str = Field(..., description="Variant name, e.g. a quantization like Q4_K_M")
    params_string: str | None = Field(None, description="Parameter size, e.g. 8B")
    format: str | None = Field(None, description="Overrides the source format when set")
    min_memory_usage_bytes: int | None = Field(None, ge=0)
    file: str | None = None


class HuggingFaceSource(_Document):
    type: Literal["huggingface"]
    user: str
    repo: str
    format: str | None = Field(None, description="Weight format, e.g. gguf or safetensors")
    min_memory_usage_bytes: int | None = Field(None, ge=0)
    variants: list[SourceVariant] = Field(default_factory=list)


class UnknownSource(_OpenRecord):
    pass


KNOWN_SOURCE_TYPES = {"huggingface"}

Source = Annotated[
    Union[
        Annotated[HuggingFaceSource, Tag("huggingface")],
        Annotated[UnknownSource, Tag("unknown")],
    ],
    _tagged(KNOWN_SOURCE_TYPES),
]


class ConcreteBase(_Document):
    """A concrete artifact with its download sources in preference order."""

    key: str
    sources: list[Source] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Metadata and config
# ---------------------------------------------------------------------------


class MetadataOverrides(_Document):
    """Model metadata. Only fields that were actually set override ancestors."""

    domain: str | None = Field(None, description="Model domain, e.g. llm or embedding")
    architectures: list[str] | None = None
    compatibility_types: list[str] | None = Field(
        None, description="Weight formats, e.g. gguf, safetensors"
    )
    params_strings: list[str] | None = None
    min_memory_usage_bytes: int | None = Field(None, ge=0)
    context_lengths: list[Annotated[int, Field(gt=0)]] | None = None
    trained_for_tool_use: TriState | None = Field(None, description="true, false or mixed")
    vision: TriState | None = Field(None, description="true, false or mixed")


class CheckedValue(_Document):
    """An optionally-enabled setting: ``value`` applies only when ``checked``."""

    checked: bool
    value: Any = None


def _config_value(value: Any) -> Any:
    if isinstance(value, Mapping) and "checked" in value:
        return CheckedValue.model_validate(value)
    return value


def normalize_config(raw: Any) -> dict[str, Any]:
    """Flatten a config block into a dotted-key mapping.

    Accepts either a flat ``{key: value}`` mapping or the sectioned form
    where each section holds a ``fields`` list of ``{key, value}`` entries.
    Section entries already carry full dotted keys.
    """
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"config must be a mapping, got {type(raw).__name__}")

    fields: dict[str, Any] = {}
    for name, entry in raw.items():
        if name in CONFIG_SECTIONS and isinstance(entry, Mapping) and "fields" in entry:
            for item in entry["fields"] or []:
                if not isinstance(item, Mapping) or "key" not in item:
                    raise ValueError(f"config.{name}.fields entries need a 'key'")
                fields[item["key"]] = _config_value(item.get("value"))
        else:
            fields[name] = _config_value(entry)
    return fields


# ---------------------------------------------------------------------------
# Custom fields and effects
# ---------------------------------------------------------------------------


class SetJinjaVariableEffect(_Document):
    type: Literal["setJinjaVariable"]
    variable: str


class UnknownEffect(_OpenRecord):
    pass


KNOWN_EFFECT_TYPES = {"setJinjaVariable"}

Effect = Annotated[
    Union[
        Annotated[SetJinjaVariableEffect, Tag("setJinjaVariable")],
        Annotated[UnknownEffect, Tag("unknown")],
    ],
    _tagged(KNOWN_EFFECT_TYPES),
]


def value_matches_type(field_type: str, value: Any) -> bool:
    """Return True if *value* is acceptable for a custom field of *field_type*."""
    if field_type == "boolean":
        return isinstance(value, bool)
    if field_type == "string":
        return isinstance(value, str)
    return False


class CustomField(_Document):
    key: str
    display_name: str
    description: str = ""
    type: Literal["boolean", "string"]
    default_value: StrictBool | StrictStr
    effects: list[Effect] = Field(default_factory=list)

    @model_validator(mode="after")
    def _default_matches_type(self) -> "CustomField":
        if not value_matches_type(self.type, self.default_value):
            raise ValueError(
                f"defaultValue {self.default_value!r} of custom field '{self.key}' "
                f"is not a {self.type}"
            )
        return self


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


class EqualsCondition(_Document):
    type: Literal["equals"]
    key: str = Field(..., description="Path expression rooted at $, e.g. $.enableThinking")
    value: Any = None


class UnknownCondition(_OpenRecord):
    pass


KNOWN_CONDITION_TYPES = {"equals"}

Condition = Annotated[
    Union[
        Annotated[EqualsCondition, Tag("equals")],
        Annotated[UnknownCondition, Tag("unknown")],
    ],
    _tagged(KNOWN_CONDITION_TYPES),
]


class SuggestionField(_Document):
    key: str
    value: Any = None


class Suggestion(_Document):
    message: str
    conditions: list[Condition] = Field(default_factory=list)
    fields: list[SuggestionField] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


class ModelDefinition(_Document):
    """A virtual model definition as delivered by a loader."""

    model: str = Field(..., min_length=1, description="Model id in org/name form")
    base: str | list[ConcreteBase] = Field(
        ..., description="Id of another definition, or the concrete bases"
    )
    metadata_overrides: MetadataOverrides | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    custom_fields: list[CustomField] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)

    @field_validator("config", mode="before")
    @classmethod
    def _flatten_config(cls, value: Any) -> dict[str, Any]:
        return normalize_config(value)

    @property
    def is_concrete(self) -> bool:
        return not isinstance(self.base, str)

    @property
    def concrete_keys(self) -> list[str]:
        if isinstance(self.base, str):
            return []
        return [b.key for b in self.base]


# ---------------------------------------------------------------------------
# Runtime and results
# ---------------------------------------------------------------------------


class RuntimeCapabilities(_Document):
    """What the executing host can run. Hashable, so usable as a cache key."""

    supported_formats: tuple[str, ...] = Field(
        ..., description="Formats the installed engines load, most preferred first"
    )
    available_memory_bytes: int = Field(..., ge=0)
    preferred_param_size: str | None = Field(None, description="e.g. 8B or Q4_K_M")


class DiagnosticKind(str, Enum):
    NO_COMPATIBLE_SOURCE = "NoCompatibleSource"
    INVALID_FIELD_VALUE = "InvalidFieldValue"
    UNKNOWN_SOURCE_TYPE = "UnknownSourceType"
    UNKNOWN_EFFECT_TYPE = "UnknownEffectType"
    UNKNOWN_CONDITION_TYPE = "UnknownConditionType"
    MALFORMED_CONDITION_PATH = "MalformedConditionPath"
    UNKNOWN_FIELD_OVERRIDE = "UnknownFieldOverride"


class Diagnostic(_Document):
    """A non-fatal problem recorded during resolution."""

    kind: DiagnosticKind
    message: str
    key: str | None = None


class SelectedSource(_Document):
    base_key: str
    source: Source
    variant: SourceVariant | None = None
    format: str
    min_memory_usage_bytes: int = 0
    fits_in_memory: bool


class ResolvedCustomField(_Document):
    key: str
    type: Literal["boolean", "string"]
    value: bool | str
    default_value: StrictBool | StrictStr
    overridden: bool = False


class ResolvedModel(_Document):
    """Fully resolved, runnable configuration for one model id."""

    model: str
    ancestry: tuple[str, ...] = Field(..., description="Model ids from concrete root to leaf")
    metadata: MetadataOverrides
    config: dict[str, Any] = Field(default_factory=dict)
    source: SelectedSource | None = None
    custom_fields: tuple[ResolvedCustomField, ...] = ()
    bindings: dict[str, Any] = Field(default_factory=dict)
    suggestions: tuple[Suggestion, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    def has_diagnostic(self, kind: DiagnosticKind) -> bool:
        return any(d.kind == kind for d in self.diagnostics)

    def to_document(self) -> dict[str, Any]:
        """Dump to JSON-ready data using the model.yaml spelling."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
