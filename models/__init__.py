"""
models/ - Domain Layer
======================
Plain dataclasses describing votes and voting results. No I/O lives here.
"""
