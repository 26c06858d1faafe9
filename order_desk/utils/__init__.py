"""
Utilities for COD Order Desk
"""
from .logger import get_logger, DeskLogger

__all__ = ['get_logger', 'DeskLogger']
