"""Domain layer for the lightningd adapter.

Contains records, value objects, enums, state mapping and domain events.
"""
