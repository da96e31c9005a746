"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: Tag vocabulary, coordinate precision, geometry tolerances
- diagnostics: Structured run-level diagnostic events and their sink
- exceptions: Custom exception hierarchy
"""
