"""
EEI auditor: entity exposure audits with resumable batch jobs.
"""

__version__ = "0.1.0"
