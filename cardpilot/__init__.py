"""
cardpilot core: merchant resolution, card recommendation, statement
diagnostics, credit pathway and the guarded credit-question engine.

Everything in this package is free of network and database access. Stores
and external transports are passed in by the caller.
"""

__version__ = "0.1.0"
