"""Extension layer — pipeline lifecycle hooks via pluggy.

Discovery: entry_points (pip-installed) in the ``expandctl.plugins`` group.
INVARIANT: Plugin failures are warnings, never errors.
"""

from expandctl.plugins.manager import PluginManager

__all__ = ["PluginManager"]
