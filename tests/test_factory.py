"""
Object Factory (controller/factory.py)

Tests class resolution, configuration normalisation and option injection.
"""

from typing import Optional

import pytest

from halyard.controller import CLASS_KEY, ObjectFactory, create_object
from halyard.controller.access import AccessControlFilter
from halyard.faults import ActionConfigFault


class Widget:
    size = 1
    colour: Optional[str] = None
    label: str

    def __init__(self, *args):
        self.args = args
        self.runtime = "set in init"
        self._secret = "hidden"

    @property
    def area(self):
        return self.size * self.size

    @property
    def width(self):
        return self._width

    @width.setter
    def width(self, value):
        self._width = value

    def render(self):
        return "widget"


# ============================================================================
# resolve_class
# ============================================================================

class TestResolveClass:

    def test_class_passthrough(self):
        assert ObjectFactory.resolve_class(Widget) is Widget

    def test_dotted_path(self):
        assert ObjectFactory.resolve_class("halyard.controller.access.AccessControlFilter") is AccessControlFilter

    def test_colon_path(self):
        assert ObjectFactory.resolve_class("halyard.controller.access:AccessControlFilter") is AccessControlFilter

    @pytest.mark.parametrize("ref, reason", [
        ("nodots", "bad_class_reference"),
        ("", "bad_class_reference"),
        (42, "bad_class_reference"),
        ("halyard.nope.Missing", "import_failed"),
        ("halyard.controller.access.Missing", "import_failed"),
        ("halyard.controller.access.client_ip", "bad_class_reference"),
    ])
    def test_bad_references(self, ref, reason):
        with pytest.raises(ActionConfigFault) as exc_info:
            ObjectFactory.resolve_class(ref)
        assert exc_info.value.metadata["reason"] == reason


# ============================================================================
# normalize / create
# ============================================================================

class TestCreate:

    def test_normalize_class(self):
        assert ObjectFactory.normalize(Widget) == {CLASS_KEY: Widget}

    def test_normalize_copies_mapping(self):
        config = {CLASS_KEY: Widget, "size": 2}
        normalized = ObjectFactory.normalize(config)
        normalized.pop(CLASS_KEY)
        assert CLASS_KEY in config

    def test_normalize_requires_class(self):
        with pytest.raises(ActionConfigFault) as exc_info:
            ObjectFactory.normalize({"size": 2})
        assert exc_info.value.metadata["reason"] == "missing_class"

    def test_constructor_args(self):
        widget = create_object(Widget, "a", "b")
        assert widget.args == ("a", "b")

    def test_declared_options(self):
        widget = create_object({CLASS_KEY: Widget, "size": 3, "colour": "red", "label": "x", "width": 7})
        assert widget.size == 3
        assert widget.colour == "red"
        assert widget.label == "x"
        assert widget.width == 7

    def test_instance_attribute_option(self):
        widget = create_object({CLASS_KEY: Widget, "runtime": "configured"})
        assert widget.runtime == "configured"

    @pytest.mark.parametrize("name", ["shape", "area", "render", "_secret"])
    def test_rejected_options(self, name):
        with pytest.raises(ActionConfigFault) as exc_info:
            create_object({CLASS_KEY: Widget, name: 1})
        assert exc_info.value.metadata["reason"] == "unknown_option"

    def test_lenient_factory_skips_unknown(self, caplog):
        widget = ObjectFactory(strict=False).create({CLASS_KEY: Widget, "shape": "round", "size": 4})
        assert widget.size == 4
        assert not hasattr(widget, "shape")
        assert "no configurable property 'shape'" in caplog.text
