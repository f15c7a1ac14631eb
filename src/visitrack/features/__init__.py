"""Feature packages: auth, permissions and audit."""
