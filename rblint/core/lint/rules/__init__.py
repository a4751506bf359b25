# RbLint Rules Module

from .base_rule import BaseRule, MethodDefRule
from .naming_rules import (
    MethodNameGetPrefixRule,
)


def get_all_rules():
    """获取所有内置规则类"""
    return [
        # Naming
        MethodNameGetPrefixRule,
    ]


__all__ = [
    'BaseRule',
    'MethodDefRule',
    'get_all_rules',
    # Naming
    'MethodNameGetPrefixRule',
]
