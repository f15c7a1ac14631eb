"""Users feature: account administration within an organization."""
