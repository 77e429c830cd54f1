"""Value resolution defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_int_env_var

DEFAULT_MAX_PARENT_DEPTH = 16
DEFAULT_SELF_RESOLVING_FIELDS: tuple[str, ...] = ("options",)


@dataclass(frozen=True, slots=True)
class ResolutionConfig:
    # longest parent chain followed before inheritance is abandoned
    max_parent_depth: int = DEFAULT_MAX_PARENT_DEPTH
    self_resolving_fields: tuple[str, ...] = DEFAULT_SELF_RESOLVING_FIELDS

    def is_self_resolving(self, field_name: str) -> bool:
        return field_name in self.self_resolving_fields


def get_resolution_config() -> ResolutionConfig:
    depth = optional_int_env_var("CATALOGSYNC_MAX_PARENT_DEPTH", DEFAULT_MAX_PARENT_DEPTH)
    return ResolutionConfig(max_parent_depth=max(depth, 0))
