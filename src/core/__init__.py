"""
Core domain models, mathematical primitives, and input contracts.

Building blocks shared by the analytics and accounting packages; nothing in
here performs I/O beyond loading the bundled JSON schemas.
"""
