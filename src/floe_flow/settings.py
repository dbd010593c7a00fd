"""Flow compiler configuration for floe-flow.

This module defines CompilerConfig and its loaders:
- CompilerConfig.from_yaml(): Load from a YAML file
- CompilerConfig.from_env(): Load from FLOE_FLOW_* environment variables
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

# Environment variables read by CompilerConfig.from_env()
TEMPLATE_CATALOG_ENV_VAR = "FLOE_FLOW_TEMPLATE_CATALOG"
INSTRUMENTATION_ENV_VAR = "FLOE_FLOW_INSTRUMENTATION"
COMPILER_ENV_VAR = "FLOE_FLOW_COMPILER"

DEFAULT_METER_NAME = "floe.flow"

_FALSE_VALUES = frozenset({"0", "false", "no", "off"})

CompilerType = Literal["identity", "multi_hop"]


class CompilerConfig(BaseModel):
    """Configuration for a FlowCompiler.

    Attributes:
        template_catalog_path: Root directory of the template catalog. When
            unset (or blank), template references are not resolved.
        instrumentation_enabled: Record compile metrics when True. Disabling
            instrumentation never changes compilation results.
        compiler: Compiler strategy built by ``create_flow_compiler``.
        meter_name: OpenTelemetry meter name for compile metrics.

    Example:
        >>> config = CompilerConfig(
        ...     template_catalog_path="/etc/floe/templates",
        ...     compiler="multi_hop",
        ... )
        >>> config.template_catalog_path
        PosixPath('/etc/floe/templates')
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    template_catalog_path: Path | None = Field(
        default=None,
        description="Template catalog root directory (None = no template resolution)",
    )
    instrumentation_enabled: bool = Field(
        default=True,
        description="Record compilation success/failure/latency metrics",
    )
    compiler: CompilerType = Field(
        default="identity",
        description="Compiler strategy: single-hop identity or multi-hop routing",
    )
    meter_name: str = Field(
        default=DEFAULT_METER_NAME,
        min_length=1,
        description="OpenTelemetry meter name",
    )

    @field_validator("template_catalog_path", mode="before")
    @classmethod
    def blank_path_is_unset(cls, value: Any) -> Any:
        """Treat a blank catalog path as not configured."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_yaml(cls, path: Path | str) -> CompilerConfig:
        """Load compiler configuration from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            yaml.YAMLError: If the YAML is invalid.
            pydantic.ValidationError: If validation fails.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        logger.info("Loading compiler configuration from %s", path)
        raw_data: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw_data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CompilerConfig:
        """Build compiler configuration from environment variables.

        Args:
            environ: Environment mapping. Defaults to ``os.environ``.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}

        if TEMPLATE_CATALOG_ENV_VAR in env:
            data["template_catalog_path"] = env[TEMPLATE_CATALOG_ENV_VAR]
        if INSTRUMENTATION_ENV_VAR in env:
            data["instrumentation_enabled"] = (
                env[INSTRUMENTATION_ENV_VAR].strip().lower() not in _FALSE_VALUES
            )
        if COMPILER_ENV_VAR in env:
            data["compiler"] = env[COMPILER_ENV_VAR].strip()

        logger.debug("Compiler configuration from environment: %s", sorted(data))
        return cls.model_validate(data)
