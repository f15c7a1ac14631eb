"""Auth feature: credentials, tokens, lockout and the login flows."""
