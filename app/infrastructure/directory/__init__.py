"""Directory adapter (LDAP / Active Directory)."""

from app.infrastructure.directory.ldap_client import (
    DirectoryConfig,
    LdapDirectoryClient,
    encode_unicode_pwd,
)

__all__ = [
    "DirectoryConfig",
    "LdapDirectoryClient",
    "encode_unicode_pwd",
]
