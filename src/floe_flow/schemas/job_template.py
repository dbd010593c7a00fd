"""JobTemplate model for floe-flow.

A job template is a reusable job configuration skeleton addressed by URI.
Templates may inherit from other templates and may declare attributes that
must be present once the template has been resolved against a flow config.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from floe_flow.config_paths import expand_dotted_keys, split_path


class JobTemplate(BaseModel):
    """Reusable job configuration skeleton.

    Attributes:
        uri: Template URI within its catalog.
        description: Human-readable description.
        config: Default job configuration (dotted keys are expanded).
        required_attributes: Dotted paths that must be set after resolution.
        inherits: Parent template URIs, applied in order before this template.

    Example:
        >>> template = JobTemplate(
        ...     uri="ingest.yaml",
        ...     config={"source.format": "avro", "writer.parallelism": 4},
        ...     required_attributes=["source.path"],
        ... )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    uri: str = Field(
        ...,
        min_length=1,
        description="Template URI",
    )
    description: str = Field(
        default="",
        description="Human-readable description",
    )
    config: dict[str, Any] = Field(
        default_factory=dict,
        description="Default job configuration",
    )
    required_attributes: list[str] = Field(
        default_factory=list,
        description="Dotted paths required after resolution",
    )
    inherits: list[str] = Field(
        default_factory=list,
        description="Parent template URIs",
    )

    @field_validator("config", mode="before")
    @classmethod
    def expand_config(cls, value: Any) -> Any:
        """Expand dotted configuration keys into nested mappings."""
        if isinstance(value, dict):
            return expand_dotted_keys(value)
        return value

    @field_validator("required_attributes")
    @classmethod
    def validate_required_attributes(cls, value: list[str]) -> list[str]:
        """Require well-formed dotted paths."""
        for path in value:
            split_path(path)
        return value
