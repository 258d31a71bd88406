"""Type registry and path classification."""

from .companion import CompanionRule, is_companion_path, primary_path_of
from .descriptor import INVALID_TYPE, MetadataDescriptor, classify
from .registry import RegistryEntry, TypeRegistry, load_registry

__all__ = [
    "CompanionRule",
    "INVALID_TYPE",
    "MetadataDescriptor",
    "RegistryEntry",
    "TypeRegistry",
    "classify",
    "is_companion_path",
    "load_registry",
    "primary_path_of",
]
