"""Provide insights about Python objects."""

import inspect
from typing import Any


def get_qualname(obj: Any) -> str:
    """Get the qualified name of the given object.

    Used to describe the functions invoked by expressions,
    will return something like ``module.class.method``
    or ``module.function``.

    >>> import pyarrow.compute as pc
    >>> get_qualname(pc.add)
    'pyarrow.compute.add'
    """
    module = inspect.getmodule(obj)
    module_name = module.__name__ if module is not None else "__main__"
    if inspect.ismethod(obj) or inspect.isfunction(obj):
        if getattr(obj, "__self__", None) is not None:
            class_name = obj.__self__.__class__.__name__
            return f"{module_name}.{class_name}.{obj.__name__}"
        return f"{module_name}.{obj.__qualname__}"
    elif inspect.isclass(obj):
        return f"{module_name}.{obj.__name__}"
    elif inspect.ismodule(obj):
        return obj.__name__
    elif callable(obj):
        name = getattr(obj, "__name__", obj.__class__.__name__)
        return f"{module_name}.{name}"
    raise ValueError(f"Unable to detect path for object of type {type(obj)}")
