"""Game domain services: win detection, boards, identities and scoring.

Everything here is transport-agnostic. Socket handlers and HTTP routes
build commands and hand them to ``GameManager``.
"""
