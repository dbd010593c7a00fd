"""Job template catalogs and template resolution for floe-flow.

This module handles turning a template reference into a job configuration:
- TemplateCatalog: Protocol for looking templates up by URI
- FileSystemTemplateCatalog: YAML templates under a root directory
- InMemoryTemplateCatalog: Templates registered programmatically
- TemplateResolver: Merge template defaults (with inheritance) under a
  flow-supplied configuration and check required attributes

Template file format (YAML)::

    description: Ingest raw files into staging
    inherits:
      - base.yaml
    required_attributes:
      - source.path
    config:
      source.format: avro
      writer.parallelism: 4
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlparse

import yaml
from pydantic import ValidationError

from floe_flow.config_paths import deep_merge, has_path
from floe_flow.errors import MalformedTemplateError, TemplateNotFoundError
from floe_flow.schemas.job_template import JobTemplate

logger = logging.getLogger(__name__)


@runtime_checkable
class TemplateCatalog(Protocol):
    """Looks job templates up by URI."""

    def get_template(self, uri: str) -> JobTemplate:
        """Return the template at ``uri``.

        Raises:
            TemplateNotFoundError: If the template does not exist.
            MalformedTemplateError: If the template cannot be parsed.
        """
        ...


class InMemoryTemplateCatalog:
    """Template catalog backed by a dictionary.

    Example:
        >>> catalog = InMemoryTemplateCatalog(
        ...     [JobTemplate(uri="ingest.yaml", config={"source.format": "avro"})]
        ... )
        >>> catalog.get_template("ingest.yaml").config
        {'source': {'format': 'avro'}}
    """

    def __init__(self, templates: Iterable[JobTemplate] = ()) -> None:
        self._templates: dict[str, JobTemplate] = {t.uri: t for t in templates}

    def add(self, template: JobTemplate) -> None:
        """Register (or replace) a template."""
        self._templates[template.uri] = template

    def get_template(self, uri: str) -> JobTemplate:
        try:
            return self._templates[uri]
        except KeyError as e:
            raise TemplateNotFoundError(uri) from e


class FileSystemTemplateCatalog:
    """Template catalog reading YAML documents below a root directory.

    Template URIs are resolved relative to the root. A scheme, if present,
    is ignored (``FS:///ingest.yaml`` and ``ingest.yaml`` name the same
    file). URIs escaping the root are treated as not found.

    Attributes:
        root: Catalog root directory.

    Example:
        >>> catalog = FileSystemTemplateCatalog("/etc/floe/templates")
        >>> template = catalog.get_template("ingest.yaml")
    """

    def __init__(self, root: Path | str) -> None:
        """Initialize the catalog.

        Args:
            root: Catalog root directory.

        Raises:
            FileNotFoundError: If ``root`` does not exist.
            NotADirectoryError: If ``root`` is not a directory.
            PermissionError: If ``root`` cannot be read.
        """
        self.root = Path(root).expanduser().resolve()

        if not self.root.exists():
            raise FileNotFoundError(f"Template catalog not found: {self.root}")
        if not self.root.is_dir():
            raise NotADirectoryError(f"Template catalog is not a directory: {self.root}")
        if not os.access(self.root, os.R_OK | os.X_OK):
            raise PermissionError(f"Template catalog is not readable: {self.root}")

        logger.info("Initialized template catalog at %s", self.root)

    def template_path(self, uri: str) -> Path:
        """Map a template URI to a path inside the catalog root.

        Raises:
            TemplateNotFoundError: If the URI points outside the root.
        """
        relative = urlparse(uri).path if "://" in uri else uri
        candidate = (self.root / relative.lstrip("/")).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise TemplateNotFoundError(
                uri,
                internal_details=f"Template path escapes catalog root: {candidate}",
            )
        return candidate

    def get_template(self, uri: str) -> JobTemplate:
        path = self.template_path(uri)
        if not path.is_file():
            raise TemplateNotFoundError(uri)

        logger.debug("Loading template %s from %s", uri, path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedTemplateError(
                f"Template '{uri}' could not be read",
                template_uri=uri,
                internal_details=str(e),
            ) from e

        try:
            raw_data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise MalformedTemplateError(
                f"Template '{uri}' is not valid YAML",
                template_uri=uri,
                internal_details=str(e),
            ) from e

        if raw_data is None:
            raw_data = {}
        if not isinstance(raw_data, Mapping):
            raise MalformedTemplateError(
                f"Template '{uri}' must be a mapping",
                template_uri=uri,
            )

        data: dict[str, Any] = dict(raw_data)
        data["uri"] = uri
        try:
            return JobTemplate.model_validate(data)
        except ValidationError as e:
            raise MalformedTemplateError(
                f"Template '{uri}' is invalid",
                template_uri=uri,
                internal_details=str(e),
            ) from e


class TemplateResolver:
    """Resolve template references into effective job configurations.

    The effective configuration is the template's defaults (parents first,
    then the template itself) overridden by the caller's configuration.
    Caller-supplied values always win on key collisions.

    Example:
        >>> resolver = TemplateResolver(catalog)
        >>> config = resolver.resolve("ingest.yaml", {"source": {"path": "/data"}})
    """

    def __init__(self, catalog: TemplateCatalog) -> None:
        """Initialize the resolver.

        Args:
            catalog: Catalog used to look templates (and their parents) up.
        """
        self.catalog = catalog

    def resolve(self, template_uri: str, overrides: Mapping[str, Any]) -> dict[str, Any]:
        """Resolve ``template_uri`` against ``overrides``.

        Args:
            template_uri: Template reference.
            overrides: Flow-supplied configuration (nested).

        Returns:
            New merged configuration; inputs are not mutated.

        Raises:
            TemplateNotFoundError: If the template or a parent is missing.
            MalformedTemplateError: If a template is invalid, inheritance is
                cyclic, or required attributes are missing after merging.
        """
        defaults, required = self._collect(template_uri, ())
        resolved = deep_merge(defaults, overrides)

        missing = [path for path in required if not has_path(resolved, path)]
        if missing:
            raise MalformedTemplateError(
                f"Template '{template_uri}' is missing required attributes: {', '.join(missing)}",
                template_uri=template_uri,
            )

        logger.debug("Resolved template %s", template_uri)
        return resolved

    def _collect(
        self,
        template_uri: str,
        lineage: tuple[str, ...],
    ) -> tuple[dict[str, Any], list[str]]:
        """Gather inherited defaults and required attributes for a template."""
        if template_uri in lineage:
            chain = " -> ".join((*lineage, template_uri))
            raise MalformedTemplateError(
                f"Template '{lineage[0]}' has cyclic inheritance",
                template_uri=lineage[0],
                internal_details=chain,
            )

        template = self.catalog.get_template(template_uri)
        defaults: dict[str, Any] = {}
        required: list[str] = []

        for parent_uri in template.inherits:
            parent_defaults, parent_required = self._collect(parent_uri, (*lineage, template_uri))
            defaults = deep_merge(defaults, parent_defaults)
            required.extend(path for path in parent_required if path not in required)

        defaults = deep_merge(defaults, template.config)
        required.extend(path for path in template.required_attributes if path not in required)
        return defaults, required
