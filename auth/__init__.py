"""auth/ -- Authentication and authorization package for Konnect.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or feed/.
api/ imports from auth/, not the other way around.
"""
