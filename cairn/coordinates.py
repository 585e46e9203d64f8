"""
Coordinate translation between manifest syntax and registry syntax.

  manifest:  ``"com.foo@bar": "1.2.3"``   (group '@' artifact, version separate)
  registry:  ``com.foo:bar:1.2.3``        (three colon-separated parts)

The mapping is a plain character substitution, so it is its own inverse for
every coordinate whose artifact name does not itself contain '@'.  Such names
cannot round-trip: ``a@b@c`` becomes ``a:b:c`` on the way out and is read back
as group ``a``, artifact ``b``, version ``c``.  That ambiguity is accepted.
"""
from __future__ import annotations

from typing import Optional, Tuple

from cairn import config as cfg


def to_registry(name: str, version: Optional[str] = None) -> str:
    """``("com.foo@bar", "1.2.3")`` → ``"com.foo:bar:1.2.3"``."""
    coordinate = name.replace(cfg.MANIFEST_SEPARATOR, cfg.REGISTRY_SEPARATOR)
    if version:
        coordinate = f"{coordinate}{cfg.REGISTRY_SEPARATOR}{version}"
    return coordinate


def to_manifest(coordinate: str) -> Tuple[str, Optional[str]]:
    """
    ``"com.foo:bar:1.2.3"`` → ``("com.foo@bar", "1.2.3")``.

    A two-part coordinate (no version) returns ``(name, None)``.  Anything
    with more than three parts keeps the extra parts in the version field.
    """
    parts = coordinate.split(cfg.REGISTRY_SEPARATOR)
    if len(parts) < 3:
        return coordinate.replace(cfg.REGISTRY_SEPARATOR, cfg.MANIFEST_SEPARATOR), None
    name = f"{parts[0]}{cfg.MANIFEST_SEPARATOR}{parts[1]}"
    return name, cfg.REGISTRY_SEPARATOR.join(parts[2:])


def normalize_name(name: str) -> str:
    """Bring a project/dependency name into manifest syntax."""
    return name.strip().replace(cfg.REGISTRY_SEPARATOR, cfg.MANIFEST_SEPARATOR)


def split_name(name: str) -> Tuple[str, str]:
    """Return ``(group, artifact)``; group is empty for unqualified names."""
    normalized = normalize_name(name)
    if cfg.MANIFEST_SEPARATOR not in normalized:
        return "", normalized
    group, artifact = normalized.split(cfg.MANIFEST_SEPARATOR, 1)
    return group, artifact


def artifact_of(name: str) -> str:
    return split_name(name)[1]


def is_valid_registry_coordinate(coordinate: str) -> bool:
    """At least ``group:artifact:version``, no empty parts."""
    parts = coordinate.split(cfg.REGISTRY_SEPARATOR)
    return len(parts) >= 3 and all(parts)
