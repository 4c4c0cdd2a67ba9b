"""Authentication and session establishment.

Learn: Two ways to log in, two ways to stay logged in.

Logging in (strategies):
1. Local → email/password checked against a bcrypt hash
2. Federated → Google OAuth 2.0 authorization code + PKCE

Staying logged in (session backends, exactly one per deployment):
1. CookieBackend → signed ``session`` cookie (itsdangerous)
2. TokenBackend → ``Authorization: Bearer <jwt>`` (PyJWT)

Both backends resolve to an AuthContext carrying the user id. The gate
(``require_auth``) is the only place that turns a request into one.
"""
