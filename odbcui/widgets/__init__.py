"""Widget library for the Textual UI."""

from __future__ import annotations

from .detail_pane import DetailPane
from .navigation_sidebar import NavigationSidebar
from .status_bar import StatusBar

__all__ = ["DetailPane", "NavigationSidebar", "StatusBar"]
