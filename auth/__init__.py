"""auth/ -- Authentication core for SecureAuth.

Credential store, password policy, input sanitizing, CSRF guard, session
manager, and the AuthService that composes them.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. api/ and main.py import from auth/,
not the other way around. The SQLAlchemy engine is handed in by the caller.
"""
