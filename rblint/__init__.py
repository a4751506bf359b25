"""
RbLint - Ruby 方法命名检查工具

检查 Ruby 源码中带参数的 get_/set_ 前缀方法，给出改名建议并支持自动修正。
"""
__version__ = "1.0.0"
