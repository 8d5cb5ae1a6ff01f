"""auth/ -- Authentication and role-based authorization core for Starlane.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or galaxy/.
api/ imports from auth/, not the other way around.
"""
