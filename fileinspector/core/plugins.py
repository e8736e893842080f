"""PluginLoader — discovery of optional format-specific validator bundles.

A bundle is a Python module (``<name>.py``) or package (``<name>/__init__.py``)
placed in the plugin directory.  The manifest lists every bundle the system
knows about together with the file extensions it claims::

    [
        {"name": "fileinspector_pdf", "extensions": [".pdf"]},
        {"name": "fileinspector_openxml", "extensions": [".docx", ".xlsx", ".pptx"]}
    ]

Bundles are optional.  A bundle that is absent from the plugin directory is
logged and skipped; it stays ``loaded=False`` and contributes no steps.  A
bundle that is present but fails to import is treated the same way.

Every class a bundle exports (its ``__all__``, or its public names when it
has none) that subclasses
:class:`~fileinspector.core.steps.base.FormatSpecificValidator` is
instantiated with no arguments and returned from :meth:`PluginLoader.discover`.

Discovery is meant to run once per process; after that the loaded flags are
read-only.
"""

from __future__ import annotations

import hashlib
import importlib.util
import inspect
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable, Mapping

from fileinspector.core.extensions import normalise_extension
from fileinspector.core.steps.base import FormatSpecificValidator

logger = logging.getLogger(__name__)

#: Namespace under which bundle modules are registered in :data:`sys.modules`.
_MODULE_PREFIX = "fileinspector_bundles"


@dataclass
class LibraryManifestEntry:
    """One optional validator bundle.

    Attributes:
        name: Bundle name, also the module/package name in the plugin directory.
        extensions: Normalised file extensions the bundle claims.
        loaded: Set once the bundle has been imported successfully.
    """

    name: str
    extensions: tuple[str, ...]
    loaded: bool = False

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "LibraryManifestEntry":
        extensions = record.get("extensions", ())
        if isinstance(extensions, str):
            extensions = extensions.split()
        return cls(
            name=str(record["name"]),
            extensions=tuple(normalise_extension(e) for e in extensions),
        )


def load_manifest(path: str | Path) -> list[LibraryManifestEntry]:
    """Read a JSON bundle manifest from *path*."""
    with open(path, encoding="utf-8") as fh:
        records = json.load(fh)
    return [LibraryManifestEntry.from_record(r) for r in records]


class PluginLoader:
    """Maps file extensions to optional bundles and loads the installed ones.

    Args:
        manifest: Bundle descriptors, in manifest order.
        plugin_dir: Directory searched for bundles.
    """

    def __init__(self, manifest: Iterable[LibraryManifestEntry], plugin_dir: str | Path) -> None:
        self._libraries: list[LibraryManifestEntry] = list(manifest)
        self._plugin_dir = Path(plugin_dir)
        self._mapping: dict[str, LibraryManifestEntry] = {}
        for library in self._libraries:
            for extension in library.extensions:
                # Last manifest entry claiming an extension wins.
                self._mapping[extension] = library

    @classmethod
    def from_manifest_file(cls, manifest_path: str | Path, plugin_dir: str | Path) -> "PluginLoader":
        return cls(load_manifest(manifest_path), plugin_dir)

    @property
    def libraries(self) -> list[LibraryManifestEntry]:
        return list(self._libraries)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self) -> list[FormatSpecificValidator]:
        """Import every installed bundle and instantiate its validators."""
        logger.info("Loading optional validator bundles from %s", self._plugin_dir)
        validators: list[FormatSpecificValidator] = []

        for library in self._libraries:
            logger.info("Searching for %s", library.name)
            location = self._locate(library.name)
            if location is None:
                logger.info("Library %s was not found, it will not be loaded", library.name)
                continue

            try:
                module = self._import(library.name, location)
                found = [cls() for cls in self._exported_validators(module)]
            except Exception:  # noqa: BLE001
                logger.exception("Library %s could not be loaded", library.name)
                continue

            logger.info("Library %s found, loaded %d validator(s)", library.name, len(found))
            validators.extend(found)
            library.loaded = True

        return validators

    def _locate(self, name: str) -> Path | None:
        module_file = self._plugin_dir / f"{name}.py"
        if module_file.is_file():
            return module_file
        package_init = self._plugin_dir / name / "__init__.py"
        if package_init.is_file():
            return package_init
        return None

    @staticmethod
    def _import(name: str, location: Path) -> ModuleType:
        # Keyed by location so equally named bundles from different directories do not collide.
        digest = hashlib.sha1(str(location.resolve()).encode("utf-8")).hexdigest()[:12]
        module_name = f"{_MODULE_PREFIX}.{name}_{digest}"
        if module_name in sys.modules:
            return sys.modules[module_name]

        search = [str(location.parent)] if location.name == "__init__.py" else None
        spec = importlib.util.spec_from_file_location(
            module_name, location, submodule_search_locations=search
        )
        if spec is None or spec.loader is None:
            raise ImportError(f"cannot build an import spec for {location}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            del sys.modules[module_name]
            raise
        return module

    @staticmethod
    def _exported_validators(module: ModuleType) -> list[type[FormatSpecificValidator]]:
        names = getattr(module, "__all__", None)
        if names is None:
            names = [n for n in vars(module) if not n.startswith("_")]
        exported = []
        for name in names:
            obj = getattr(module, name, None)
            if (
                inspect.isclass(obj)
                and issubclass(obj, FormatSpecificValidator)
                and not inspect.isabstract(obj)
            ):
                exported.append(obj)
        return exported

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def loaded_libraries(self) -> list[str]:
        return [library.name for library in self._libraries if library.loaded]

    def supported_formats(self) -> list[str]:
        return list(self._mapping)

    def is_library_loaded(self, name: str) -> bool:
        name = name.removesuffix(".py")
        for library in self._libraries:
            if library.name == name:
                return library.loaded
        return False

    def is_format_supported(self, extension: str) -> bool:
        return normalise_extension(extension) in self._mapping

    def is_format_validator_loaded(self, extension: str) -> bool:
        library = self._mapping.get(normalise_extension(extension))
        return library is not None and library.loaded
