"""Rendering of class descriptors as Python modules.

The same renderer feeds two outputs:

* :class:`DumpWriter` writes one module per class plus a schema-level
  ``__init__.py`` below a dump directory;
* :func:`render_debug_trace` returns the very same module text line by line
  for debug output.

Each module body is the descriptor's operation log rendered as method calls,
so importing a dumped module rebuilds an identical descriptor.  Generated text
ends with :data:`GENERATED_MARKER`; anything below that line belongs to the
user.  Output carries no timestamps, so identical input metadata always yields
byte-identical files.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Optional, Union

from schemaloader.data_models import ClassDescriptor, DumpReport, SchemaRegistry
from schemaloader.errors import DumpCollisionError, DumpError

from .naming import moniker_to_module_name

__all__ = [
    "GENERATED_HEADER",
    "GENERATED_MARKER",
    "schema_package_path",
    "render_class_module",
    "render_schema_module",
    "render_modules",
    "render_debug_trace",
    "DumpWriter",
]

logger = logging.getLogger(__name__)

GENERATED_HEADER = "# Generated by schemaloader. Do not modify anything above the end-of-generated-code line."
GENERATED_MARKER = "# -- schemaloader: end of generated code, add custom code below this line --"


def schema_package_path(schema_name: str) -> PurePosixPath:
    """Return the package directory of *schema_name* relative to a dump root."""
    return PurePosixPath(*schema_name.split("."))


def _module_names(registry: SchemaRegistry) -> Dict[str, str]:
    modules: Dict[str, str] = {}
    owners: Dict[str, str] = {}
    for moniker in registry.sources():
        module = moniker_to_module_name(moniker)
        if module in owners or module == "__init__":
            raise DumpError(
                f"Classes '{owners.get(module, module)}' and '{moniker}' would both be dumped as module '{module}'"
            )
        owners[module] = moniker
        modules[moniker] = module
    return modules


def render_class_module(descriptor: ClassDescriptor, schema_name: str) -> str:
    """Return the generated module text for one class."""

    lines = [
        GENERATED_HEADER,
        f'"""{schema_name}.{descriptor.moniker}: generated from table {descriptor.table!r}."""',
        "",
        "from schemaloader.data_models import ClassDescriptor",
        "",
        f"descriptor = ClassDescriptor(moniker={descriptor.moniker!r})",
    ]
    lines.extend(op.render() for op in descriptor.operations)
    lines.extend(["", GENERATED_MARKER, ""])
    return "\n".join(lines)


def render_schema_module(registry: SchemaRegistry) -> str:
    """Return the generated schema-level module text."""

    modules = _module_names(registry)
    lines = [
        GENERATED_HEADER,
        f'"""Schema {registry.name}: registry of generated classes."""',
        "",
        "from schemaloader.data_models import SchemaRegistry",
        "",
    ]
    lines.extend(f"from . import {modules[moniker]}" for moniker in registry.sources())
    if modules:
        lines.append("")
    lines.append(f"registry = SchemaRegistry(name={registry.name!r})")
    lines.extend(
        f"registry.register_class({moniker!r}, {modules[moniker]}.descriptor)"
        for moniker in registry.sources()
    )
    lines.extend(["", GENERATED_MARKER, ""])
    return "\n".join(lines)


def render_modules(registry: SchemaRegistry) -> Dict[PurePosixPath, str]:
    """Return relative path -> generated text for the schema and every class."""

    package = schema_package_path(registry.name)
    modules = _module_names(registry)
    rendered: Dict[PurePosixPath, str] = {package / "__init__.py": render_schema_module(registry)}
    for moniker in registry.sources():
        rendered[package / f"{modules[moniker]}.py"] = render_class_module(
            registry.source(moniker), registry.name
        )
    return rendered


def render_debug_trace(registry: SchemaRegistry) -> List[str]:
    """Return the generated modules as trace lines, each preceded by its path."""

    lines: List[str] = []
    for path, text in render_modules(registry).items():
        lines.append(f"### {path}")
        lines.extend(text.splitlines())
    return lines


def _custom_tail(path: Path) -> str:
    """Return the user content found below the marker of an existing file."""

    text = path.read_text(encoding="utf-8")
    _, marker, tail = text.partition(GENERATED_MARKER)
    if not marker:
        raise DumpCollisionError(path, "file has no end-of-generated-code marker")
    return tail[1:] if tail.startswith("\n") else tail


class DumpWriter:
    """Write rendered modules below *dump_directory*.

    Parameters
    dump_directory
        Existing directory acting as the import root of the dumped package.
    force
        Delete pre-existing artifacts before writing (``really_erase_my_files``).
        Content appended below the marker is lost.
    preserve_custom
        Rewrite pre-existing artifacts in place, keeping everything below the
        marker.  Ignored when *force* is set.
    on_delete
        Called with every path removed in force mode.

    With neither flag set, any pre-existing artifact aborts the dump before a
    single file is written.
    """

    def __init__(
        self,
        dump_directory: Union[str, Path],
        *,
        force: bool = False,
        preserve_custom: bool = False,
        on_delete: Optional[Callable[[Path], None]] = None,
    ) -> None:
        self._root = Path(dump_directory)
        self._force = force
        self._preserve_custom = preserve_custom
        self._on_delete = on_delete

    def render(self, registry: SchemaRegistry) -> Dict[Path, str]:
        """Return absolute target path -> generated text."""
        return {self._root / path: text for path, text in render_modules(registry).items()}

    def write(self, registry: SchemaRegistry) -> DumpReport:
        if not self._root.is_dir():
            raise DumpError(f"Dump directory '{self._root}' does not exist")

        files = self.render(registry)
        existing = [path for path in files if path.exists()]
        report = DumpReport()
        tails: Dict[Path, str] = {}

        if existing and self._force:
            for path in existing:
                logger.warning("Deleting existing file '%s' due to 'really_erase_my_files' setting", path)
                path.unlink()
                report.deleted.append(str(path))
                if self._on_delete is not None:
                    self._on_delete(path)
        elif existing and self._preserve_custom:
            # Read every tail first so a malformed file aborts before any write.
            tails = {path: _custom_tail(path) for path in existing}
        elif existing:
            raise DumpCollisionError(existing[0])

        for path, text in files.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8", newline="\n") as handle:
                handle.write(text)
                if path in tails:
                    handle.write(tails[path])
            report.written.append(str(path))
            if tails.get(path):
                report.preserved.append(str(path))
        logger.info("Dumped %d file(s) to %s", len(report.written), self._root)
        return report
