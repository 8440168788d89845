"""
Editor Assist: quota-gated AI writing assistant with structured edit actions.
"""

__version__ = "0.1.0"
