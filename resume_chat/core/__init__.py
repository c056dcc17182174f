"""
Core modules for Resume Chat.

This package contains the usage governor, the static knowledge base,
and the routing policy that chooses between them and the upstream model.
"""
