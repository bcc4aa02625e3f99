"""Domain layer — source documents, encoding and header transforms, errors.

This layer depends only on stdlib.
It must never import from services, infrastructure, commands, or config.
"""
