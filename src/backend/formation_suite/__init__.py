"""
Business Formation Suite backend.

Guided EIN, LLC, business license and business banking worksheets with
ZIP-driven jurisdiction detection.
"""

__version__ = "1.0.0"
