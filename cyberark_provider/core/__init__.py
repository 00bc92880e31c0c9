"""Core API clients for the CyberArk provider."""
