"""Feature modules with auto-discovery."""

import logging
from importlib import import_module
from pathlib import Path
from types import ModuleType


logger = logging.getLogger(__name__)


def discover_modules() -> list[ModuleType]:
    """Auto-discover feature modules that expose a router.

    A module is a subpackage of ``opsconsole.modules`` with a ``router``
    attribute. It may also expose ``permission_rules``, a mapping of
    operation id to ``PermissionRule`` registered at startup.

    Returns:
        Imported modules, sorted by name.
    """
    modules_dir = Path(__file__).parent
    modules: list[ModuleType] = []

    for path in sorted(modules_dir.iterdir()):
        if path.is_dir() and not path.name.startswith("_"):
            module = import_module(f"opsconsole.modules.{path.name}")
            if hasattr(module, "router"):
                modules.append(module)
                logger.info("Loaded module: %s", path.name)

    return modules
