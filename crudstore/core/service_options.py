"""Service Options — immutable per-service configuration captured at construction.

Invariants:
    - ServiceOptions is frozen: nothing mutates it after construction
    - model (the store handle) is mandatory; every other option has a default
    - Both Python names and camelCase names (Model, id, addTimestamps,
      createdTimestamp, updatedTimestamp, ajvOptions) are accepted
    - Invalid options surface as ConfigurationError, never per call

Design Decisions:
    - Pydantic frozen models over dataclasses: alias handling and type
      coercion for option dicts coming from config files
    - PaginationPolicy.active is derived from default: a max without a default
      clips nothing, same as having no policy
"""

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from crudstore.core.domain_types import DEFAULT_ID_FIELD
from crudstore.core.errors import ConfigurationError


class PaginationPolicy(BaseModel):
    """Default and maximum page size."""
    model_config = ConfigDict(frozen=True)

    default: int | None = Field(None, ge=0)
    max: int | None = Field(None, ge=0)

    @property
    def active(self) -> bool:
        return bool(self.default)


class ValidatorOptions(BaseModel):
    """Tuning for compiled JSON-schema validators."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    remove_additional: bool = Field(True, alias="removeAdditional")
    check_formats: bool = Field(False, alias="checkFormats")


class ServiceOptions(BaseModel):
    """Everything a RecordService needs, validated once."""
    model_config = ConfigDict(
        frozen=True, populate_by_name=True, arbitrary_types_allowed=True,
    )

    model: Any = Field(alias="Model")
    id_field: str = Field(DEFAULT_ID_FIELD, alias="id", min_length=1)
    paginate: PaginationPolicy = Field(default_factory=PaginationPolicy)
    add_timestamps: bool = Field(False, alias="addTimestamps")
    created_timestamp: str = Field("createdAt", alias="createdTimestamp", min_length=1)
    updated_timestamp: str = Field("updatedAt", alias="updatedTimestamp", min_length=1)
    validator_options: ValidatorOptions = Field(
        default_factory=ValidatorOptions, alias="ajvOptions",
    )
    json_schema: dict | None = Field(None, alias="schema")
    events: tuple[str, ...] = ()

    @field_validator("model")
    @classmethod
    def model_required(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("store `model` needs to be provided")
        return v

    @field_validator("paginate", mode="before")
    @classmethod
    def paginate_disabled(cls, v: Any) -> Any:
        """paginate=None/False/{} all mean 'no pagination'."""
        if not v:
            return PaginationPolicy()
        return v

    @property
    def schema_document(self) -> dict | None:
        """Explicit schema option, else the schema attached to the store."""
        if self.json_schema is not None:
            return self.json_schema
        return getattr(self.model, "schema", None)

    @classmethod
    def from_mapping(cls, options: "Mapping[str, Any] | ServiceOptions | None") -> "ServiceOptions":
        if isinstance(options, ServiceOptions):
            return options
        if not options:
            raise ConfigurationError("Service options have to be provided")
        if "Model" not in options and "model" not in options:
            raise ConfigurationError("Store `model` needs to be provided")
        try:
            return cls.model_validate(dict(options))
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(f"Invalid service options: {details}") from e
