"""Locate the runtime plugin that evaluates entry files."""

import importlib
from importlib.metadata import EntryPoint, entry_points

from addonfleet.core.exceptions import ConfigurationError
from addonfleet.interfaces.runtime import RuntimeFactory
from addonfleet.utils.logging import get_logger

logger = get_logger(__name__)

ENTRY_POINT_GROUP = "addonfleet.runtimes"


def _import_reference(reference: str) -> object:
    module_name, _, attr_path = reference.partition(":")
    try:
        obj: object = importlib.import_module(module_name)
        for attr in attr_path.split("."):
            obj = getattr(obj, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot import runtime {reference!r}: {e}") from e
    return obj


def _select_entry_point(name: str | None) -> EntryPoint:
    available = {ep.name: ep for ep in entry_points(group=ENTRY_POINT_GROUP)}

    if name is not None:
        if name not in available:
            raise ConfigurationError(
                f"Runtime {name!r} is not installed; available: {sorted(available) or 'none'}"
            )
        return available[name]

    if len(available) != 1:
        raise ConfigurationError(
            f"Expected exactly one installed runtime in {ENTRY_POINT_GROUP!r}, "
            f"found {sorted(available) or 'none'}; select one with --runtime"
        )
    return next(iter(available.values()))


def load_runtime_factory(reference: str | None = None) -> RuntimeFactory:
    """Load the runtime factory.

    Args:
        reference: ``package.module:attribute``, the name of an entry point in
            the ``addonfleet.runtimes`` group, or None to use the only
            installed entry point. The target may be a RuntimeFactory
            instance or a zero-argument callable returning one.

    Returns:
        RuntimeFactory instance

    Raises:
        ConfigurationError: If the plugin cannot be found or has the wrong type
    """
    if reference and ":" in reference:
        target = _import_reference(reference)
    else:
        entry_point = _select_entry_point(reference)
        try:
            target = entry_point.load()
        except Exception as e:
            raise ConfigurationError(f"Failed to load runtime {entry_point.name!r}: {e}") from e

    factory = target if isinstance(target, RuntimeFactory) else None
    if factory is None and callable(target):
        try:
            factory = target()
        except Exception as e:
            raise ConfigurationError(f"Failed to instantiate runtime {reference!r}: {e}") from e

    if not isinstance(factory, RuntimeFactory):
        raise ConfigurationError(
            f"Runtime {reference!r} does not provide a RuntimeFactory (got {type(factory).__name__})"
        )

    logger.debug("runtime_factory_loaded", runtime=type(factory).__name__)
    return factory
