"""
Caller-facing services built on the immunization schedule engine
"""
