"""Project version constants.

These constants are used in logs and in the client user agents so that runs
against a warehouse can be traced back to a specific tool version.
"""

ENGINE_NAME: str = "bq-antipattern"
ENGINE_VERSION: str = "0.2.0"

RECORD_SCHEMA_VERSION: int = 1
