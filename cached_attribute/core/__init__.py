"""
Core utilities that are used by multiple other modules in cached_attribute.
"""
