"""
COD Order Desk
Order intake from pasted text or screenshots (Gemini extraction), delivery
status tracking across the current batch and the persisted history, analytics,
and text/PDF exports.
"""

__version__ = "1.0.0"
