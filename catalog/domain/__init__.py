"""Domain layer: exceptions, value objects, commands and pure calculations.

No infrastructure imports.
"""
