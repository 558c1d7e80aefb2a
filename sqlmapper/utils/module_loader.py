"""Import helpers used for mapper discovery."""

import importlib
import inspect
from types import ModuleType
from typing import Any, Union

from typing_extensions import is_protocol

__all__ = (
    "find_protocols",
    "import_string",
)


def import_string(dotted_path: str) -> "Any":
    """Dotted Path Import.

    Import a dotted module path and return the attribute/class designated by the
    last name in the path. Raise ImportError if the import failed.

    Args:
        dotted_path: The path of the module to import.

    Raises:
        ImportError: Could not import the module.

    Returns:
        object: The imported object.
    """
    try:
        parts = dotted_path.split(".")
        for i in range(len(parts), 0, -1):
            module_path = ".".join(parts[:i])
            try:
                module = importlib.import_module(module_path)
                break
            except ModuleNotFoundError:
                continue
        else:
            msg = f"{dotted_path} doesn't look like a module path"
            raise ImportError(msg)
        obj: Any = module
        for attr in parts[i:]:
            try:
                obj = getattr(obj, attr)
            except AttributeError as e:
                msg = f"Module '{module.__name__}' has no attribute '{attr}' in '{dotted_path}'"
                raise ImportError(msg) from e
        return obj
    except Exception as e:
        msg = f"Could not import '{dotted_path}': {e}"
        raise ImportError(msg) from e


def find_protocols(module: "Union[str, ModuleType]", base: "type[Any]" = object) -> "list[type[Any]]":
    """Return the Protocol classes defined in ``module`` that subclass ``base``.

    Protocols merely imported into the module are skipped.
    """
    if isinstance(module, str):
        module = import_string(module)
    found: list[type[Any]] = []
    for _, member in inspect.getmembers(module, inspect.isclass):
        if member.__module__ != module.__name__ or not is_protocol(member):
            continue
        if base is not object and base not in member.__mro__:
            continue
        found.append(member)
    return found
