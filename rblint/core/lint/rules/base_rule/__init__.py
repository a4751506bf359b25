# Base Rule Module

from .base_rule import BaseRule, MethodDefRule

__all__ = [
    'BaseRule',
    'MethodDefRule',
]
