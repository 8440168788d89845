"""
Core modules for Editor Assist.

This package contains the quota ledger, tier policy, prompt composition,
action extraction and application, and the conversational fallback.
"""
