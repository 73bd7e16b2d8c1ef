"""Load list definitions from YAML metadata files.

Layout::

    metadata/
        lists/*.yaml    one list per file (``list: Post``)
        blocks/*.yaml   reusable field groups (``block: seo``)

List files use camelCase option keys (``defaultSort``, ``perPage``); they
are converted to the snake_case options ``ListForge.create_list`` and
``List.add`` accept.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from listforge.errors import ConfigurationError, DuplicateListKey

if TYPE_CHECKING:
    from listforge.context import ListForge
    from listforge.lists.list import List

logger = logging.getLogger(__name__)

# List options whose nested keys are options too
_NESTED_OPTION_KEYS = ("track", "map", "autokey")


def to_snake_case(key: str) -> str:
    """``defaultSort`` -> ``default_sort``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def fix_on_keys(obj: Any) -> Any:
    """Rename the boolean key ``True`` to ``"on"`` throughout a parsed document.

    PyYAML parses the bare key ``on:`` as boolean ``True`` (YAML 1.1).
    """
    if isinstance(obj, dict):
        return {("on" if k is True else k): fix_on_keys(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [fix_on_keys(item) for item in obj]
    return obj


@dataclass
class ListDefinition:
    """A list as read from YAML, ready to be applied to a context."""

    key: str
    options: dict[str, Any] = field(default_factory=dict)
    # Headings and ``{path: options}`` dicts in declaration order
    definitions: list[Any] = field(default_factory=list)
    source: Path | None = None


class MetadataLoader:
    """Loads list and block definitions from YAML files."""

    def __init__(self, metadata_path: Path):
        self.metadata_path = Path(metadata_path)
        self.lists: dict[str, ListDefinition] = {}
        self.blocks: dict[str, list[dict[str, Any]]] = {}

    def load_all(self) -> None:
        """Load all blocks, then all lists."""
        self._load_blocks()
        self._load_lists()

    @staticmethod
    def _read(yaml_file: Path) -> Any:
        with open(yaml_file) as f:
            return fix_on_keys(yaml.safe_load(f))

    def _load_blocks(self) -> None:
        blocks_path = self.metadata_path / "blocks"
        if not blocks_path.exists():
            return

        for yaml_file in sorted(blocks_path.glob("*.yaml")):
            data = self._read(yaml_file)
            if data and "block" in data:
                self.blocks[data["block"]] = data.get("fields", [])

    def _load_lists(self) -> None:
        lists_path = self.metadata_path / "lists"
        if not lists_path.exists():
            return

        for yaml_file in sorted(lists_path.glob("*.yaml")):
            data = self._read(yaml_file)
            if not data or "list" not in data:
                logger.warning("Skipping %s: no 'list' key", yaml_file)
                continue
            definition = self._resolve_list(data, yaml_file)
            if definition.key in self.lists:
                raise DuplicateListKey(definition.key)
            self.lists[definition.key] = definition

    def _resolve_list(self, data: dict[str, Any], source: Path | None = None) -> ListDefinition:
        """Resolve a list document, expanding included blocks."""
        key = data["list"]

        all_fields: list[Any] = []
        for include in data.get("includes", []):
            block_name = include["block"]
            prefix = include.get("prefix", "")
            if block_name not in self.blocks:
                raise ConfigurationError(
                    f"List '{key}' includes unknown block '{block_name}'", list_key=key
                )
            for block_field in self.blocks[block_name]:
                field_copy = dict(block_field)
                if prefix and "name" in field_copy:
                    field_copy["name"] = prefix + field_copy["name"]
                all_fields.append(field_copy)
        all_fields.extend(data.get("fields", []))

        options: dict[str, Any] = {}
        for option, value in data.items():
            if option in ("list", "fields", "includes"):
                continue
            if option == "hooks":
                options[option] = value
                continue
            name = to_snake_case(option)
            if name in _NESTED_OPTION_KEYS and isinstance(value, dict):
                value = {to_snake_case(k): v for k, v in value.items()}
            options[name] = value

        return ListDefinition(
            key=key,
            options=options,
            definitions=[self._resolve_field(f, key) for f in all_fields],
            source=source,
        )

    def _resolve_field(self, data: Any, list_key: str) -> Any:
        """Convert a YAML field entry to a ``List.add`` definition."""
        if isinstance(data, str):
            return data
        if "heading" in data:
            return {
                "heading": data["heading"],
                "depends_on": data.get("dependsOn", data.get("depends_on")),
            }
        if "name" not in data:
            raise ConfigurationError(f"Field on list '{list_key}' has no name", list_key=list_key)
        options = {to_snake_case(k): v for k, v in data.items() if k != "name"}
        return {data["name"]: options}

    def apply(self, forge: "ListForge", register: bool = True) -> dict[str, "List"]:
        """Create every loaded list on ``forge``.

        All lists are created before any is registered so relationships
        may refer to lists defined in later files.
        """
        created: dict[str, "List"] = {}
        for key, definition in self.lists.items():
            created[key] = forge.create_list(key, **definition.options)
        for key, definition in self.lists.items():
            created[key].add(*definition.definitions)
        if register:
            for lst in created.values():
                lst.register()
        logger.debug("Loaded %d lists from %s", len(created), self.metadata_path)
        return created


def load_metadata(forge: "ListForge", metadata_path: Path, register: bool = True) -> dict[str, "List"]:
    """Load ``metadata_path`` and create its lists on ``forge``."""
    loader = MetadataLoader(metadata_path)
    loader.load_all()
    return loader.apply(forge, register=register)
