"""orgmapper package initializer.

This package contains the data-shaping pipeline behind the OrgMapper Shiny
application: CSV parsing, column mapping, projection of roster rows into
employee records, filtering, and aggregation into the manager -> location
hierarchy drawn as a treemap.  See individual module docstrings for details.
"""
