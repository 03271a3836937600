from .loader import dump_manifest, load_manifest, manifest_from_dict, parse_manifest
from .models import ModelDeclaration, PipelineManifest, SourceSystem

__all__ = [
    "ModelDeclaration",
    "PipelineManifest",
    "SourceSystem",
    "dump_manifest",
    "load_manifest",
    "manifest_from_dict",
    "parse_manifest",
]
