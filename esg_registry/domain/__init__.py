"""Domain layer: models, errors and pure domain services.

No infrastructure dependencies live here.
"""
