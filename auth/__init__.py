"""auth/ -- Authentication core for Passgate: directory, hashing, verification, tokens.

Layer rule: auth/ imports only stdlib + third-party libraries, plus core/ for
settings. It does NOT import from api/.
api/ and the CLI import from auth/, not the other way around.
"""
