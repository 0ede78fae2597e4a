"""Authentication.

Users sign up / log in with email + password and receive a pair of JWTs
(access + refresh) as HTTP-only cookies. Every protected request resolves
the access cookie to a CurrentIdentity used to scope todo queries.
"""
