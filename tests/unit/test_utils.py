##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Tests for the `utils.py` module.
"""

import logging
from types import SimpleNamespace

import pytest
import yaml

from upsertkv.utils import (
    dict_deep_merge,
    load_yaml,
    nested_dict_to_namespaces,
    nested_namespace_to_dicts,
    prefer_incoming,
)


def test_load_yaml(tmp_path):
    """
    Test reading a YAML file.

    Args:
        tmp_path: PyTest temporary directory fixture.
    """
    filepath = tmp_path / "settings.yaml"
    filepath.write_text("store:\n  type: memory\n")

    assert load_yaml(str(filepath)) == {"store": {"type": "memory"}}


def test_load_yaml_does_not_execute_tags(tmp_path):
    """
    Test that arbitrary Python tags are refused.

    Args:
        tmp_path: PyTest temporary directory fixture.
    """
    filepath = tmp_path / "evil.yaml"
    filepath.write_text("!!python/object/apply:os.system ['true']\n")

    with pytest.raises(yaml.YAMLError):
        load_yaml(str(filepath))


def test_namespace_round_trip():
    """Test converting a nested dict to namespaces and back without touching the input."""
    data = {"store": {"type": "redis", "options": {"prefix": "p"}}}

    namespaces = nested_dict_to_namespaces(data)

    assert namespaces.store.options.prefix == "p"
    assert isinstance(data["store"], dict)
    assert nested_namespace_to_dicts(namespaces) == data
    assert isinstance(namespaces.store, SimpleNamespace)


@pytest.mark.parametrize("func, arg", [(nested_dict_to_namespaces, ["list"]), (nested_namespace_to_dicts, {"a": 1})])
def test_namespace_conversion_type_errors(func, arg):
    """
    Test that the conversion functions reject the wrong input type.

    Args:
        func: The conversion function.
        arg: An input of the wrong type.
    """
    with pytest.raises(TypeError):
        func(arg)


class TestDictDeepMerge:
    """Tests for the `dict_deep_merge` function."""

    def test_nested_merge(self):
        """Test that nested dictionaries are merged rather than replaced."""
        dict_a = {"store": {"type": "sqlite"}, "logging": {"level": "INFO"}}
        dict_b = {"store": {"busy_timeout": 1}}

        dict_deep_merge(dict_a, dict_b)

        assert dict_a == {"store": {"type": "sqlite", "busy_timeout": 1}, "logging": {"level": "INFO"}}

    def test_conflict_without_handler_keeps_original(self, caplog: pytest.LogCaptureFixture):
        """
        Test that conflicting leaves keep `dict_a`'s value and log a warning.

        Args:
            caplog: PyTest log capture fixture.
        """
        caplog.set_level(logging.WARNING, logger="upsertkv.utils")
        dict_a = {"store": {"type": "sqlite"}}

        dict_deep_merge(dict_a, {"store": {"type": "redis"}})

        assert dict_a["store"]["type"] == "sqlite"
        assert "Conflict at store.type" in caplog.text

    def test_conflict_with_prefer_incoming(self):
        """Test that `prefer_incoming` lets `dict_b` win conflicts."""
        dict_a = {"store": {"type": "sqlite"}}

        dict_deep_merge(dict_a, {"store": {"type": "redis"}}, conflict_handler=prefer_incoming)

        assert dict_a["store"]["type"] == "redis"

    def test_invalid_inputs_are_ignored(self, caplog: pytest.LogCaptureFixture):
        """
        Test that non-dict inputs are logged and ignored.

        Args:
            caplog: PyTest log capture fixture.
        """
        caplog.set_level(logging.WARNING, logger="upsertkv.utils")
        dict_a = {"a": 1}

        assert dict_deep_merge(dict_a, ["no lists allowed!"]) is None

        assert dict_a == {"a": 1}
        assert "dict_b '['no lists allowed!']' is not a dict" in caplog.text
