##############################################################################
# Copyright (c) upsertkv Project developers. See top-level LICENSE and
# COPYRIGHT files for dates and other details. No copyright assignment is
# required to contribute to upsertkv.
##############################################################################

"""
The `common` package provides shared definitions used across upsertkv.

Modules:
    enums.py: Defines enumerations for conflict policies and upsert outcomes.
"""
