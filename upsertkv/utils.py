##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Module for project-wide utility functions.
"""
import logging
from copy import deepcopy
from types import SimpleNamespace
from typing import Any, Callable, Dict

import yaml


LOG = logging.getLogger(__name__)


def load_yaml(filepath: str) -> Dict:
    """
    Safely read a YAML file and return its contents.

    Args:
        filepath: The file path to the YAML file to be read.

    Returns:
        A dict representing the contents of the YAML file.
    """
    with open(filepath, "r") as _file:
        return yaml.safe_load(_file)


def nested_dict_to_namespaces(dic: Dict) -> SimpleNamespace:
    """
    Convert a nested dictionary into a nested SimpleNamespace structure.

    Each key in the dictionary becomes an attribute of a SimpleNamespace, allowing
    for attribute-style access to the data. The input is not modified.

    Args:
        dic: The nested dictionary to be converted.

    Returns:
        A SimpleNamespace object representing the nested structure of the input dictionary.

    Raises:
        TypeError: If the input is not a dictionary.
    """

    def recurse(dic):
        if not isinstance(dic, dict):
            return dic
        for key, val in list(dic.items()):
            dic[key] = recurse(val)
        return SimpleNamespace(**dic)

    if not isinstance(dic, dict):
        raise TypeError(f"{dic} is not a dict")

    new_dic = deepcopy(dic)
    return recurse(new_dic)


def nested_namespace_to_dicts(namespaces: SimpleNamespace) -> Dict:
    """
    Convert a nested SimpleNamespace structure into a nested dictionary.

    Args:
        namespaces: The nested SimpleNamespace to be converted.

    Returns:
        A dictionary representing the nested structure of the input SimpleNamespace.

    Raises:
        TypeError: If the input is not a SimpleNamespace.
    """

    def recurse(namespaces):
        if not isinstance(namespaces, SimpleNamespace):
            return namespaces
        for key, val in list(namespaces.__dict__.items()):
            setattr(namespaces, key, recurse(val))
        return namespaces.__dict__

    if not isinstance(namespaces, SimpleNamespace):
        raise TypeError(f"{namespaces} is not a SimpleNamespace")

    new_ns = deepcopy(namespaces)
    return recurse(new_ns)


def prefer_incoming(dict_a_val: Any, dict_b_val: Any, key: str, path: list) -> Any:  # pylint: disable=unused-argument
    """Conflict handler for [`dict_deep_merge`][utils.dict_deep_merge] that keeps `dict_b`'s value."""
    return dict_b_val


def dict_deep_merge(dict_a: Dict, dict_b: Dict, path: list = None, conflict_handler: Callable = None):
    """
    Recursively merges `dict_b` into `dict_a`, performing a deep merge.

    Nested dictionaries are merged instead of replaced. Existing leaf values in
    `dict_a` are kept unless a conflict handler is provided to resolve them.

    Args:
        dict_a: The dictionary that will be merged into.
        dict_b: The dictionary to merge into `dict_a`.
        path: The current path in the dictionary tree, used for logging during recursion.
        conflict_handler: A function called as `conflict_handler(dict_a_val=..., dict_b_val=...,
            key=..., path=...)` when both dictionaries hold different leaf values for a key.
            Its return value is stored. If not provided, a warning is logged and `dict_a` wins.
    """
    msgs = [
        f"{name} '{actual_dict}' is not a dict"
        for name, actual_dict in [("dict_a", dict_a), ("dict_b", dict_b)]
        if not isinstance(actual_dict, dict)
    ]
    if len(msgs) > 0:
        LOG.warning(f"Problem with dict_deep_merge: {', '.join(msgs)}. Ignoring this merge call.")
        return

    if path is None:
        path = []
    for key in dict_b:
        if key in dict_a:
            if isinstance(dict_a[key], dict) and isinstance(dict_b[key], dict):
                dict_deep_merge(dict_a[key], dict_b[key], path=path + [str(key)], conflict_handler=conflict_handler)
            elif dict_a[key] == dict_b[key]:
                pass  # same leaf value
            elif conflict_handler is not None:
                dict_a[key] = conflict_handler(
                    dict_a_val=dict_a[key], dict_b_val=dict_b[key], key=key, path=path + [str(key)]
                )
            else:
                LOG.warning(f"Conflict at {'.'.join(path + [str(key)])}. Ignoring the update to key '{key}'.")
        else:
            dict_a[key] = dict_b[key]
