"""
Analysis passes: unification, type inference, import collection.
"""
