"""
Configuration for Resume Chat.

Usage limits and knowledge base files, plus environment settings.
"""
