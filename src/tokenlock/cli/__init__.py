"""
tokenlock command line interface.
"""
