"""Device profiles: which GATT service to talk to and how to pace writes.

A profile is a small YAML document validated against the packaged JSON
schema. Profiles shipped with the package are read first; files found under
the XDG config and data directories are read afterwards and replace packaged
profiles with the same id.
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Iterator
from dataclasses import dataclass, fields
from functools import lru_cache
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from fwupdctl.core.errors import ProfileLoadError, ProfileValidationError
from fwupdctl.core.model import DeviceProfile

LOGGER = logging.getLogger(__name__)

DEFAULT_PROFILE_ID = "default"
PROFILE_SUFFIXES = (".yml", ".yaml")

_BOOL_TAG = "tag:yaml.org,2002:bool"
_FLAG_WORDS = {"true": True, "false": False}
_UUID_RE = re.compile(
    r"[0-9a-f]{4}|[0-9a-f]{8}|[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
)
_PROFILE_DEFAULTS = {f.name: f.default for f in fields(DeviceProfile)}


class ProfileYamlLoader(yaml.SafeLoader):
    """Safe loader for profile files.

    Plain scalars are never turned into booleans (``yes``/``on`` stay strings;
    the write-mode flags are parsed explicitly), and a key repeated within one
    mapping is an error instead of silently keeping the last value.
    """

    yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag != _BOOL_TAG]
        for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        seen: set[Any] = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise ProfileValidationError(f"Duplicate key '{key}' in YAML document")
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


@dataclass(frozen=True)
class LoadedProfiles:
    profiles: dict[str, DeviceProfile]
    warnings: tuple[str, ...]

    def get(self, profile_id: str | None) -> DeviceProfile:
        wanted = profile_id or DEFAULT_PROFILE_ID
        try:
            return self.profiles[wanted]
        except KeyError:
            available = ", ".join(sorted(self.profiles))
            raise ProfileLoadError(f"Unknown profile '{wanted}'. Available: {available}") from None


@lru_cache(maxsize=1)
def _schema_validator() -> Any:
    schema = json.loads(
        resources.files("fwupdctl.schemas").joinpath("profile.schema.json").read_text(encoding="utf-8")
    )
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def user_profile_dirs() -> list[Path]:
    home = Path.home()
    config_home = Path(os.environ.get("XDG_CONFIG_HOME") or home / ".config")
    data_home = Path(os.environ.get("XDG_DATA_HOME") or home / ".local" / "share")
    return [base / "fwupdctl" / "profiles" for base in (config_home, data_home)]


def _profile_files() -> Iterator[tuple[bool, Path | Traversable]]:
    """Yield ``(is_user, path)`` for every profile file, packaged ones first."""
    packaged = resources.files("fwupdctl.profiles")
    for item in sorted(packaged.iterdir(), key=lambda item: item.name):
        if item.name.endswith(PROFILE_SUFFIXES):
            yield False, item

    for directory in user_profile_dirs():
        if not directory.is_dir():
            continue
        for path in sorted(directory.iterdir()):
            if path.suffix in PROFILE_SUFFIXES:
                yield True, path


def _parse_document(path: Path | Traversable) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProfileLoadError(f"Could not read profile file {path}: {exc}") from exc

    try:
        doc = yaml.load(text, Loader=ProfileYamlLoader)
    except yaml.YAMLError as exc:
        raise ProfileValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(doc, dict):
        raise ProfileValidationError(f"Profile file {path} must contain a mapping at root")

    try:
        _schema_validator().validate(doc)
    except ValidationError as exc:
        where = ".".join(str(part) for part in exc.path)
        where = f" ({where})" if where else ""
        raise ProfileValidationError(f"Schema validation failed for {path}{where}: {exc.message}") from exc
    return doc


def _uuid(doc: dict[str, Any], key: str) -> str:
    value = doc[key].strip().lower()
    if not _UUID_RE.fullmatch(value):
        raise ProfileValidationError(f"{doc['id']}.{key} must be a 16-bit, 32-bit, or 128-bit UUID string")
    return value


def _flag(doc: dict[str, Any], key: str) -> bool:
    value = doc.get(key, _PROFILE_DEFAULTS[key])
    if isinstance(value, bool):
        return value
    parsed = _FLAG_WORDS.get(str(value).strip().lower())
    if parsed is None:
        raise ProfileValidationError(f"{doc['id']}.{key} must be boolean true/false, got {value!r}")
    return parsed


def profile_from_document(doc: dict[str, Any]) -> DeviceProfile:
    """Turn a schema-valid profile mapping into a DeviceProfile."""
    return DeviceProfile(
        id=doc["id"],
        name=doc["name"],
        service_uuid=_uuid(doc, "service_uuid"),
        char_uuid=_uuid(doc, "char_uuid"),
        chunk_size=int(doc.get("chunk_size", _PROFILE_DEFAULTS["chunk_size"])),
        discovery_timeout_s=float(doc.get("discovery_timeout_s", _PROFILE_DEFAULTS["discovery_timeout_s"])),
        command_write_with_response=_flag(doc, "command_write_with_response"),
        data_write_with_response=_flag(doc, "data_write_with_response"),
    )


def load_profiles() -> LoadedProfiles:
    profiles: dict[str, DeviceProfile] = {}
    warnings: list[str] = []

    for is_user, path in _profile_files():
        profile = profile_from_document(_parse_document(path))
        LOGGER.debug("Loaded profile '%s' from %s", profile.id, path)
        if is_user and profile.id in profiles:
            warning = f"User profile '{profile.id}' overrides packaged profile"
            LOGGER.warning(warning)
            warnings.append(warning)
        profiles[profile.id] = profile

    return LoadedProfiles(profiles=profiles, warnings=tuple(warnings))
