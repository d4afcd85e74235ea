"""Integration adapters.

Adapters connect the roster core to external systems; currently Discord.
"""
