"""
Backends: Elm source rendering.
"""
