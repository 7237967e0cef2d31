"""Scenario file loading via importlib."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

from loadcheck._internal.errors import ScenarioError
from loadcheck.dsl.scenario import ScenarioDefinition, registry


def load_scenario(file_path: str | Path, name: str | None = None) -> ScenarioDefinition:
    """Import a scenario file and return one of its scenarios.

    The file is executed as a fresh module, so ``@scenario`` decorators in
    it run again. The registry is cleared first; loading the same file
    twice does not trip the duplicate-name check.

    Args:
        file_path: Path to the ``.py`` scenario file.
        name: Scenario to pick when the file defines several. Defaults to
            the first one defined.

    Returns:
        The selected ``ScenarioDefinition``.

    Raises:
        ScenarioError: If the file is missing, is not a ``.py`` file, fails
            to import, or defines no (matching) scenario.
    """
    path = Path(file_path)

    if not path.is_file():
        msg = f"Scenario file not found: {path}"
        raise ScenarioError(msg)

    if path.suffix != ".py":
        msg = f"Scenario file must be a .py file, got: {path}"
        raise ScenarioError(msg)

    module_name = f"loadcheck_scenario_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        msg = f"Could not create module spec for: {path}"
        raise ScenarioError(msg)

    registry.clear()
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except ScenarioError:
        sys.modules.pop(module_name, None)
        raise
    except Exception as exc:
        sys.modules.pop(module_name, None)
        msg = f"Failed to import scenario file {path}: {exc}"
        raise ScenarioError(msg) from exc

    definitions = [obj for obj in vars(module).values() if isinstance(obj, ScenarioDefinition)]
    if not definitions:
        sys.modules.pop(module_name, None)
        msg = f"No @scenario-decorated function found in {path}"
        raise ScenarioError(msg)

    if name is None:
        return definitions[0]

    for definition in definitions:
        if definition.name == name:
            return definition
    available = ", ".join(repr(d.name) for d in definitions)
    msg = f"Scenario {name!r} not found in {path} (available: {available})"
    raise ScenarioError(msg)
