"""Domain Layer: value objects, models, events and ports.

Has no dependencies on infrastructure; everything here is plain Python.
"""
