"""
Workspace role constants.
Stored in lowercase to match the workspace_role values persisted on memberships.
"""

ADMIN = "admin"
MEMBER = "member"

WORKSPACE_ROLES = (ADMIN, MEMBER)
