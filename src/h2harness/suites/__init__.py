"""The conformance scenarios, organized by section of the protocol document."""

from ..group import TestGroup
from .ping import ping_group
from .settings import defined_settings_parameters_group, settings_group
from .window_update import flow_control_window_group, window_update_group

__all__: list[str] = [
    "ROOT_SECTION",
    "ROOT_TITLE",
    "build_test_tree",
    "defined_settings_parameters_group",
    "flow_control_window_group",
    "ping_group",
    "settings_group",
    "window_update_group",
]

ROOT_SECTION = "http2"
ROOT_TITLE = "Hypertext Transfer Protocol Version 2 (HTTP/2)"


def build_test_tree() -> TestGroup:
    """Build the root group holding every section in document order."""
    root = TestGroup(section=ROOT_SECTION, title=ROOT_TITLE)
    root.add_test_group(group=settings_group())
    root.add_test_group(group=ping_group())
    root.add_test_group(group=window_update_group())
    return root
