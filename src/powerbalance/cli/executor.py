"""Script execution sandbox for power balance model scripts.

Model scripts are plain Python files that build a
:class:`~powerbalance.PowerBalanceModel` and bind it to the name ``model``.
They are executed with restricted imports and a controlled namespace.
"""

from __future__ import annotations

import builtins
import sys
from pathlib import Path
from typing import Any

# Allowed module prefixes (first component of import path)
ALLOWED_MODULES = frozenset({"powerbalance", "numpy", "scipy", "math", "pathlib"})


class RestrictedImportError(ImportError):
    """Raised when a disallowed module import is attempted."""

    pass


def execute_model_script(
    script_path: Path, script_content: str, verbose: bool = False
) -> dict[str, Any]:
    """Execute a model script in a controlled namespace.

    Only the power balance package and a few scientific and standard
    modules may be imported by the script.

    Args:
        script_path: Path to the script file (for __file__ and relative data files)
        script_content: Content of the script to execute
        verbose: If True, print debug information

    Returns:
        Namespace dict containing all variables defined by the script

    Raises:
        RestrictedImportError: If script attempts to import disallowed module
        SyntaxError: If script has syntax errors
        Exception: Any exception raised by the script during execution
    """
    original_import = builtins.__import__

    def restricted_import(name, globals=None, locals=None, fromlist=(), level=0):
        """Restricted import that only allows specific modules."""
        top_level = name.split(".")[0]
        if level == 0 and top_level not in ALLOWED_MODULES:
            raise RestrictedImportError(
                f"Import of '{name}' is not allowed in model scripts. "
                f"Allowed modules: {', '.join(sorted(ALLOWED_MODULES))}"
            )
        return original_import(name, globals, locals, fromlist, level)

    # The script gets its own builtins so the interpreter's import stays intact.
    script_builtins = dict(vars(builtins))
    script_builtins["__import__"] = restricted_import
    namespace = {
        "__name__": "__main__",
        "__file__": str(script_path),
        "__builtins__": script_builtins,
    }

    # Script directory on the path so data files resolve relative to it
    script_dir = str(Path(script_path).resolve().parent)
    sys.path.insert(0, script_dir)
    try:
        if verbose:
            print(f"Executing script: {script_path}")
            print(f"Script directory added to path: {script_dir}")

        exec(compile(script_content, str(script_path), "exec"), namespace)

        if verbose:
            defined_vars = [k for k in namespace if not k.startswith("__")]
            print(f"Script defined variables: {', '.join(defined_vars)}")
    finally:
        if script_dir in sys.path:
            sys.path.remove(script_dir)

    return namespace


def validate_model_object(namespace: dict[str, Any]) -> Any:
    """Validate that namespace contains a model object.

    Args:
        namespace: Namespace dict from script execution

    Returns:
        The model object

    Raises:
        ValueError: If no model found or it is not a model
    """
    model = namespace.get("model")

    if model is None:
        raise ValueError(
            "Script must define a 'model' variable. "
            "Example: model = PowerBalanceModel([1e9, 2e9], 'Box')"
        )

    required = ["solve", "get_output", "num_cavities"]
    missing = [m for m in required if not hasattr(model, m)]
    if missing:
        raise ValueError(
            f"'model' object is missing required attributes: {', '.join(missing)}. "
            f"Make sure it's a PowerBalanceModel instance."
        )

    return model
