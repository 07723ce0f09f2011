"""
Dependency options and architecture list composition.

Both values combine the configuration document with command-line flags.
Dependency capabilities use OR semantics: a flag can enable a capability
the configuration left off, but never disable one the configuration enabled.
"""
from __future__ import annotations

import enum
from typing import List

from .config import ConfigStructure
from .flags import ContextFlags

__all__ = ["DependencyOptions", "compose_dependency_options", "resolve_architectures"]


class DependencyOptions(enum.IntFlag):
    """Optional package-relationship classes the dependency resolver follows."""
    FOLLOW_SUGGESTS = 1
    FOLLOW_RECOMMENDS = 2
    FOLLOW_ALL_VARIANTS = 4
    FOLLOW_SOURCE = 8


def compose_dependency_options(config: ConfigStructure, flags: ContextFlags) -> DependencyOptions:
    """
    Combine config booleans and flags into a dependency option set.

    Returns:
        DependencyOptions with one member per enabled capability;
        ``DependencyOptions(0)`` when nothing is enabled
    """
    options = DependencyOptions(0)
    if config.dep_follow_suggests or flags.dep_follow_suggests:
        options |= DependencyOptions.FOLLOW_SUGGESTS
    if config.dep_follow_recommends or flags.dep_follow_recommends:
        options |= DependencyOptions.FOLLOW_RECOMMENDS
    if config.dep_follow_all_variants or flags.dep_follow_all_variants:
        options |= DependencyOptions.FOLLOW_ALL_VARIANTS
    if config.dep_follow_source or flags.dep_follow_source:
        options |= DependencyOptions.FOLLOW_SOURCE
    return options


def resolve_architectures(config: ConfigStructure, flags: ContextFlags) -> List[str]:
    """
    Select the architecture list.

    A non-empty ``--architectures`` value is split on commas verbatim (order
    kept, duplicates kept). An empty or missing value means "use the config".
    """
    if flags.architectures:
        return flags.architectures.split(",")
    return list(config.architectures)
