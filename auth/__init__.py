"""auth/ -- Authentication core for the users API.

Credential hashing (passwords.py), token issue/verify (tokens.py), the user
store (store.py), the request gate (dependencies.py) and the flows that tie
them together (service.py).

Layer rule: auth/ does NOT import from api/ or cache/ at runtime.
api/ imports from auth/, not the other way around. The identity cache is
handed to AuthService by the app assembly in api/main.py.
"""
