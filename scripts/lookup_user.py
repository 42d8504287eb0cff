"""Look up a user in the configured directory.

Binds with the service account, resolves <username>@LDAP_DOMAIN and prints
the identity. Use it to check directory settings without going through the
web flow. Exits 1 if the user is not found, 2 if the directory is unavailable.

Usage:
    uv run python -m scripts.lookup_user <username>
All imports use app.*.
"""

import sys

from app.core.config import get_settings
from app.domain.exceptions import DirectoryUnavailableException
from app.infrastructure.directory import LdapDirectoryClient
from app.shared.telemetry import setup_logging


def main() -> None:
    """Resolve sys.argv[1] and print the directory identity."""
    if len(sys.argv) < 2:
        print("Usage: uv run python -m scripts.lookup_user <username>", file=sys.stderr)
        sys.exit(1)
    username = sys.argv[1]

    settings = get_settings()
    setup_logging(debug=settings.debug)

    try:
        with LdapDirectoryClient.from_settings(settings) as directory:
            identity = directory.lookup(username)
    except DirectoryUnavailableException as e:
        print(f"{e.message} ({settings.ldap_url})", file=sys.stderr)
        sys.exit(2)

    if identity is None:
        print(f"User not found: {username}@{settings.ldap_domain}", file=sys.stderr)
        sys.exit(1)
    print(f"DN:        {identity.distinguished_name}")
    print(f"Principal: {identity.principal_name}")
    print(f"Name:      {identity.display_name}")
    print(f"Mail:      {identity.mail or '-'}")
    print(f"Telephone: {identity.telephone_number or '-'}")


if __name__ == "__main__":
    main()
