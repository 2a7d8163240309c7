##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
JSON file store for the upsertkv application.

Modules:
    json_file_store: Implements the `StoreBase` interface with a single JSON document.
"""
