"""
External services package.
"""
