from __future__ import annotations

import importlib
from typing import Any


def load_symbol(dotted: str) -> Any:
    """
    Resolve a class or function from "package.module:Name" or "package.module.Name".
    Raises ImportError with the offending path when it cannot be resolved.
    """
    if ":" in dotted:
        module_name, symbol_name = dotted.split(":", 1)
    elif "." in dotted:
        module_name, symbol_name = dotted.rsplit(".", 1)
    else:
        raise ImportError(f"Not a dotted path: {dotted!r}")

    module = importlib.import_module(module_name)
    try:
        return getattr(module, symbol_name)
    except AttributeError as exc:
        raise ImportError(f"{module_name} has no attribute {symbol_name!r}") from exc
