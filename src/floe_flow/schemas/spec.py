"""Base model shared by flow, topology and job specs.

Every spec is addressed by a URI, carries a version tag and a human
description, and owns a nested configuration mapping.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from floe_flow.config_paths import expand_dotted_keys, get_path, has_path, to_properties

SpecT = TypeVar("SpecT", bound="Spec")

DEFAULT_SPEC_VERSION = "1"


class Spec(BaseModel):
    """Common fields for all floe-flow specs.

    Configuration keys may be given in dotted form; they are expanded into
    nested mappings during validation.

    Attributes:
        uri: Unique spec URI.
        version: Version tag.
        description: Human-readable description.
        config: Nested configuration mapping.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    uri: str = Field(
        ...,
        min_length=1,
        description="Unique spec URI",
    )
    version: str = Field(
        default=DEFAULT_SPEC_VERSION,
        min_length=1,
        description="Spec version tag",
    )
    description: str = Field(
        default="",
        description="Human-readable description",
    )
    config: dict[str, Any] = Field(
        default_factory=dict,
        description="Nested configuration (dotted keys are expanded)",
    )

    @field_validator("config", mode="before")
    @classmethod
    def expand_config(cls, value: Any) -> Any:
        """Expand dotted configuration keys into nested mappings."""
        if isinstance(value, dict):
            return expand_dotted_keys(value)
        return value

    def get(self, path: str, default: Any = None) -> Any:
        """Look up a dotted path in the spec configuration."""
        return get_path(self.config, path, default)

    def has_path(self, path: str) -> bool:
        """Return True if the dotted path is present in the configuration."""
        return has_path(self.config, path)

    @property
    def properties(self) -> dict[str, str]:
        """Flat ``{"dotted.path": "value"}`` view derived from ``config``."""
        return to_properties(self.config)

    def to_long_string(self) -> str:
        """Render the spec with its full property view for logging."""
        return (
            f"{type(self).__name__}(uri={self.uri!r}, version={self.version!r}, "
            f"description={self.description!r}, properties={self.properties!r})"
        )

    @classmethod
    def from_yaml(cls: type[SpecT], path: Path | str) -> SpecT:
        """Load and validate a spec from a YAML file.

        Args:
            path: Path to the YAML document.

        Returns:
            Validated spec instance.

        Raises:
            FileNotFoundError: If the file does not exist.
            yaml.YAMLError: If the YAML is invalid.
            pydantic.ValidationError: If validation fails.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        raw_data: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw_data)
