"""
Feature modules; ``storage`` holds the virtual filesystem.
"""
