"""
Detailing Rules Module

Settings, spacing/layering rules and input validation for rebar layout.
"""

from .settings import DiscretizationConfig, ScoreWeights, Settings, parse_diameter_range
from .validation import ValidationResult, validate_calculator_input

__all__ = [
    'Settings',
    'ScoreWeights',
    'DiscretizationConfig',
    'parse_diameter_range',
    'ValidationResult',
    'validate_calculator_input',
]
