"""
SSO database configuration.
Identity store shared with the university single sign-on.
"""

DB_NAME = "SSO"


class Tables:
    """Table names in the SSO database."""
    USER = "user"
    USER_ROLE = "userrole"


# Manifest for registry
DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Single sign-on identities and application roles",
    "tables": [Tables.USER, Tables.USER_ROLE],
    "always_log_queries": False,
}
