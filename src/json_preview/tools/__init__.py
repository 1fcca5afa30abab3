from json_preview.tools.apply_patches import (
    Operation,
    PatchEngine,
    PatchResult,
    apply_patch,
    normalize_patch,
    validate_patch_shape,
)
from json_preview.tools.json_pointer import NOT_FOUND, resolve
from json_preview.tools.schema_paths import (
    generate_default_from_schema,
    get_schema_for_path,
)

__all__ = [
    "NOT_FOUND",
    "Operation",
    "PatchEngine",
    "PatchResult",
    "apply_patch",
    "generate_default_from_schema",
    "get_schema_for_path",
    "normalize_patch",
    "resolve",
    "validate_patch_shape",
]
