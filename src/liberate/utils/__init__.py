"""
Utility modules for Liberate
"""
