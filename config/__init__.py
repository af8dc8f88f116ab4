"""
config: environment-driven settings.
"""
