"""auth/ -- Account signup, login and password reset for the property backend.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. The settings it needs are passed
in by the composition root (api/main.py or main.py).
"""
