"""Pipeline components.

This package contains the query sources that turn each supported input
(inline query, SQL files and folders, CSV, INFORMATION_SCHEMA) into one lazy
stream of query records for the anti-pattern engine.
"""
