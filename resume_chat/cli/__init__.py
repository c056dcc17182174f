"""
Command-line interface for Resume Chat.
"""
