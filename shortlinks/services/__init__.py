"""
Services module for business logic separation.

This module contains the link repository, the link service (mutation
core), the redirect resolver and the per-process listing cache, keeping
business logic separate from API endpoints and database models.
"""
