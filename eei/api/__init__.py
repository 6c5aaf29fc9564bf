"""
HTTP adapter for the EEI auditor.
"""
