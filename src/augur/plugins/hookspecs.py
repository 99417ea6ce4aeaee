"""pluggy hook specifications for Augur operator plugins.

Plugins implement these hooks to register operator classes with the
registry. The registry calls them whenever a plugin is registered.

Usage (implementing a plugin):
    from augur.plugins.hookspecs import hookimpl

    class MyPlugin:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def augur_get_operators(self):
            return [MyDetector]

Note: @hookspec defines the hook interface (done here).
      @hookimpl marks plugin implementations of those hooks.
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from augur.plugins.protocols import OperatorClass

# Project name for pluggy (also the setuptools entry point group)
PROJECT_NAME = "augur"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class AugurOperatorSpec:
    """Hook specifications for operator plugins."""

    @hookspec
    def augur_get_operators(self) -> list["OperatorClass"]:  # type: ignore[empty-body]
        """Return operator classes.

        Each class must carry a unique 'type_tag' class attribute, the tag
        plan nodes use in their 'type' field.

        Returns:
            List of operator classes (not instances)
        """
