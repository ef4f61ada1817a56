"""
CodeHeal - automated error remediation for AI-generated React/TypeScript projects
"""

__version__ = "1.0.0"
