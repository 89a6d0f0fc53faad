"""Beginner-friendly overview for this module.

WHAT: FastAPI dependencies shared by every page router.
WHEN: Resolved by FastAPI once per request.
WHY: Keeps backend construction, auth mounting and route guarding in one place.
HOW: See ``charities/deps/auth.py``.
"""
