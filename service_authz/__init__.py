"""
Hybrid Authorization Service.
"""
