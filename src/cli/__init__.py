"""CLI module for the exposure engine.

Provides command-line interfaces for:
- SA-CCR exposure at default and potential future exposure
- Value at Risk
- Grid/Schedule and ISDA SIMM initial margin
"""
