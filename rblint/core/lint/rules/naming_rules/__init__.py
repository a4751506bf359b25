# Naming Rules Module

from .method_name_get_prefix_rule import MethodNameGetPrefixRule

__all__ = [
    'MethodNameGetPrefixRule',
]
