"""
configbridge - layered configuration for legacy section-based applications.

Merges settings files, environment variables and secrets (user secrets or
Azure Key Vault) into one snapshot, projects it onto legacy appSettings and
connectionStrings sections, and keeps live app settings in sync on change.
"""

__version__ = "0.1.0"
