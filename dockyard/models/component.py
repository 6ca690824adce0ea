"""Component catalog models.

The catalog is a YAML file of component definitions validated with pydantic
and resolved against the runtime configuration into ``Component`` values.
Payloads are Jinja2 templates; the rendered text is written verbatim.
"""
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

import yaml
from jinja2 import Environment, StrictUndefined, TemplateError
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from dockyard.core.config import DockyardConfig
from dockyard.core.errors import CatalogError

DEFAULT_CATALOG = Path(__file__).parent.parent / "catalog.yml"

_NAME_RE = re.compile(r'^[a-z0-9][a-z0-9_-]*$')


def _check_relative(value: str) -> None:
    if value.startswith('/') or '..' in Path(value).parts:
        raise ValueError(f"'{value}' must be a path relative to the component directory")


class ComponentSpec(BaseModel):
    """One catalog entry as written in YAML."""

    model_config = ConfigDict(extra='forbid')

    name: str
    display_name: Optional[str] = None
    description: str = ""
    directory: Optional[str] = None
    workloads: List[str] = Field(..., min_length=1, description="Container names backing the component")
    payload_file: str = "docker-compose.yml"
    payload: str = Field(..., min_length=1)
    data_dirs: List[str] = Field(default_factory=list, description="Subdirectories holding persisted data")
    named_volumes: bool = Field(False, description="Payload declares named volumes holding data")
    notes: List[str] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not _NAME_RE.match(v):
            raise ValueError(
                f"Component name '{v}' must be lowercase letters, digits, '-' or '_'"
            )
        return v

    @field_validator('directory', 'payload_file')
    @classmethod
    def validate_relative(cls, v):
        if v is not None:
            _check_relative(v)
        return v

    @field_validator('data_dirs')
    @classmethod
    def validate_data_dirs(cls, v):
        for entry in v:
            _check_relative(entry)
        return v


class CatalogSpec(BaseModel):
    """Whole catalog file."""

    model_config = ConfigDict(extra='forbid')

    components: List[ComponentSpec] = Field(..., min_length=1)

    @model_validator(mode='after')
    def validate_unique(self) -> 'CatalogSpec':
        names = [c.name for c in self.components]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate component name(s): {', '.join(duplicates)}")
        dirs = [c.directory or c.name for c in self.components]
        if len(set(dirs)) != len(dirs):
            raise ValueError("Components must not share an install directory")
        return self


@dataclass(frozen=True)
class Component:
    """A catalog entry resolved against the configured base directory."""

    name: str
    display_name: str
    install_path: Path
    workload_names: List[str]
    payload_file: str
    payload: str
    description: str = ""
    data_dirs: List[str] = field(default_factory=list)
    named_volumes: bool = False
    notes: List[str] = field(default_factory=list)

    @property
    def payload_path(self) -> Path:
        return self.install_path / self.payload_file

    @property
    def data_paths(self) -> List[Path]:
        return [self.install_path / d for d in self.data_dirs]

    @property
    def stateful(self) -> bool:
        return bool(self.data_dirs) or self.named_volumes


@dataclass
class InstallationRequest:
    """Operator asked for a component to be installed."""

    component: Component


@dataclass
class RemovalRequest:
    """Operator asked for a component to be removed.

    ``confirm_remove`` decides whether the workload goes at all;
    ``confirm_purge`` decides, separately, whether persisted data goes too.
    """

    component: Component
    confirm_remove: Callable[[str], bool]
    confirm_purge: Callable[[str], bool]

    @classmethod
    def interactive(cls, component: Component, ask: Callable[[str], bool]) -> "RemovalRequest":
        """Both decisions answered by the same prompt."""
        return cls(component, confirm_remove=ask, confirm_purge=ask)


_jinja_env = Environment(
    autoescape=False,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)


def load_catalog(config: DockyardConfig) -> List[Component]:
    """Load, validate and render the component catalog.

    Raises:
        CatalogError: If the file is missing, invalid, or a payload fails to render
    """
    path = config.catalog_file or DEFAULT_CATALOG
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise CatalogError(f"Cannot read catalog {path}: {e}") from e

    try:
        spec = CatalogSpec.model_validate(raw)
    except ValidationError as e:
        raise CatalogError(f"Invalid catalog {path}:\n{e}") from e

    return [_resolve(entry, config) for entry in spec.components]


def _resolve(entry: ComponentSpec, config: DockyardConfig) -> Component:
    install_path = config.base_dir / (entry.directory or entry.name)
    context = {
        'name': entry.name,
        'timezone': config.timezone,
        'base_dir': str(config.base_dir),
        'install_path': str(install_path),
    }
    try:
        payload = _jinja_env.from_string(entry.payload).render(**context)
        notes = [_jinja_env.from_string(n).render(**context) for n in entry.notes]
    except TemplateError as e:
        raise CatalogError(f"Cannot render payload for {entry.name}: {e}") from e

    return Component(
        name=entry.name,
        display_name=entry.display_name or entry.name,
        install_path=install_path,
        workload_names=list(entry.workloads),
        payload_file=entry.payload_file,
        payload=payload,
        description=entry.description,
        data_dirs=list(entry.data_dirs),
        named_volumes=entry.named_volumes,
        notes=notes,
    )


def find_component(components: List[Component], name: str) -> Optional[Component]:
    """Look a component up by name (case-insensitive)."""
    wanted = name.strip().lower()
    for component in components:
        if component.name == wanted:
            return component
    return None
