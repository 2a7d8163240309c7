##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
Used to store the application configuration.

The `config` package loads the `upsertkv.yaml` file, fills in defaults, and turns the
result into a [`Config`][config.Config] object that the rest of upsertkv reads from.

Modules:
    configfile.py: Locates, loads, and validates configuration files.
    bootstrap.py: Builds stores, engines, and logging from a configuration.
"""
from copy import copy
from types import SimpleNamespace
from typing import Dict, List, Optional

from upsertkv.utils import nested_dict_to_namespaces, nested_namespace_to_dicts


class Config:  # pylint: disable=R0903
    """
    The Config class, meant to store all upsertkv config settings in one place.

    Attributes:
        store (Optional[SimpleNamespace]): A namespace containing store settings.
        logging (Optional[SimpleNamespace]): A namespace containing logging settings.

    Methods:
        __copy__: Creates a shallow copy of the Config instance.
        __str__: Returns a formatted string representation of the Config instance.
        load_app_into_namespaces: Converts the provided configuration dictionary into namespaces
            and assigns them to the Config instance's attributes.
        to_dict: Converts the configuration back into a nested dictionary.
    """

    fields: List[str] = ["store", "logging"]

    def __init__(self, app_dict: Dict):
        """
        Initializes the Config instance with configuration data from a dictionary.

        Args:
            app_dict: A dictionary containing configuration data for the application.
                The "store" and "logging" keys are each converted into a `SimpleNamespace`
                and assigned to the corresponding attribute.
        """
        self.store: Optional[SimpleNamespace] = None
        self.logging: Optional[SimpleNamespace] = None
        self.load_app_into_namespaces(app_dict)

    def __copy__(self) -> "Config":
        """
        Creates a shallow copy of the Config instance.

        Returns:
            A new Config instance with copied `store` and `logging` attributes.
        """
        cls = self.__class__
        result = cls.__new__(cls)
        result.__dict__.update({field: copy(self.__dict__[field]) for field in self.fields})
        return result

    def __str__(self) -> str:
        """
        Returns a formatted string representation of the Config instance.

        Returns:
            A string containing the values of the `store` and `logging` attributes.
        """
        formatted_str = "config:"
        for name in self.fields:
            attr = getattr(self, name)
            if attr is not None:
                items = (f"    {k}: {v!r}" for k, v in attr.__dict__.items())
                joined_items = "\n".join(items)
                formatted_str += f"\n  {name}:\n{joined_items}"
            else:
                formatted_str += f"\n  {name}:\n    None"
        return formatted_str

    def load_app_into_namespaces(self, app_dict: Dict):
        """
        Converts the provided application dictionary into namespaces and assigns them
        to the Config instance's attributes.

        Args:
            app_dict: A dictionary containing configuration data for the application.
        """
        for field in self.fields:
            try:
                setattr(self, field, nested_dict_to_namespaces(app_dict[field]))
            except KeyError:
                # The sections are optional
                pass

    def to_dict(self) -> Dict:
        """
        Converts the configuration back into a nested dictionary.

        Returns:
            A dictionary with one key per configured section.
        """
        return {
            field: nested_namespace_to_dicts(getattr(self, field))
            for field in self.fields
            if getattr(self, field) is not None
        }
