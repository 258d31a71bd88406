"""Package manifest construction."""

from .builder import MANIFEST_NAMESPACE, ManifestBuilder, ManifestContents, parse_manifest, write_manifest
from .synthesizer import ManifestSynthesizer, SynthesisResult

__all__ = [
    "MANIFEST_NAMESPACE",
    "ManifestBuilder",
    "ManifestContents",
    "ManifestSynthesizer",
    "SynthesisResult",
    "parse_manifest",
    "write_manifest",
]
