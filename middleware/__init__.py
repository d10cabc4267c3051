"""
Middleware package for the learning path backend.
"""
