"""Install and verify trust for local TLS certificates, and check endpoint reachability."""

__version__ = "0.1.0"
