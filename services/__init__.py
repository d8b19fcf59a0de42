"""
services/ - Business Logic Layer
================================
Services validate input, call repositories and shape results for the
handlers. They never build SQL themselves.
"""
