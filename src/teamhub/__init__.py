"""TeamHub API — workspace collaboration backend.

Handles user accounts, authentication and session establishment for the
TeamHub frontend. Business resources (workspaces, members, projects,
tasks) are served behind the authentication gate.
"""

__version__ = "0.1.0"
