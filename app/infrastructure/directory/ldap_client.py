"""LDAP / Active Directory client (ldap3).

Resolves bare usernames to directory identities and replaces passwords via
the unicodePwd attribute. One client holds one bound connection for the
duration of a `with` block.
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass
from types import TracebackType
from typing import Any

from ldap3 import (
    AUTO_BIND_NO_TLS,
    AUTO_BIND_TLS_BEFORE_BIND,
    MODIFY_REPLACE,
    NONE,
    SIMPLE,
    SUBTREE,
    Connection,
    Server,
    Tls,
)
from ldap3.core.exceptions import LDAPException, LDAPOperationResult
from ldap3.core.results import RESULT_CONSTRAINT_VIOLATION, RESULT_UNWILLING_TO_PERFORM
from ldap3.utils.conv import escape_filter_chars

from app.core.config import Settings
from app.domain.entities import DirectoryIdentity
from app.domain.enums import PasswordChangeOutcome
from app.domain.exceptions import DirectoryUnavailableException
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import traced

logger = get_logger(__name__)

USER_ATTRIBUTES = (
    "distinguishedName",
    "userPrincipalName",
    "name",
    "mail",
    "telephoneNumber",
)

# Result codes Active Directory uses to reject a new password (complexity,
# history, minimum age). AD also answers 53 to a unicodePwd change over an
# unencrypted connection; Settings refuses such connections.
POLICY_RESULT_CODES = frozenset({RESULT_CONSTRAINT_VIOLATION, RESULT_UNWILLING_TO_PERFORM})


@dataclass(frozen=True)
class DirectoryConfig:
    """Connection parameters and service credentials for the directory."""

    url: str
    domain: str
    service_username: str
    service_password: str
    timeout_seconds: int = 10
    start_tls: bool = False
    validate_certificate: bool = True
    ca_certs_file: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> DirectoryConfig:
        return cls(
            url=settings.ldap_url,
            domain=settings.ldap_domain,
            service_username=settings.ldap_service_username,
            service_password=settings.ldap_service_password.get_secret_value(),
            timeout_seconds=settings.ldap_timeout_seconds,
            start_tls=settings.ldap_start_tls,
            validate_certificate=settings.ldap_validate_certificate,
            ca_certs_file=settings.ldap_ca_certs_file,
        )

    @property
    def principal(self) -> str:
        return f"{self.service_username}@{self.domain}"

    @property
    def auto_bind(self) -> str:
        """ldaps:// is encrypted from the first byte; ldap:// needs StartTLS before the bind."""
        return AUTO_BIND_TLS_BEFORE_BIND if self.start_tls else AUTO_BIND_NO_TLS

    @property
    def search_base(self) -> str:
        """Naming context of the domain, e.g. example.com -> DC=example,DC=com."""
        return ",".join(f"DC={part}" for part in self.domain.split(".") if part)


def encode_unicode_pwd(password: str) -> bytes:
    """Encode a password the way Active Directory expects for unicodePwd.

    The plaintext is wrapped in double quotes and encoded as UTF-16-LE.
    """
    return f'"{password}"'.encode("utf-16-le")


def _attribute(attributes: dict[str, Any], name: str) -> str:
    """Return the first value of an attribute as str, or '' when absent."""
    value = attributes.get(name)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class LdapDirectoryClient:
    """Directory client bound with the service account for one `with` block.

    Usage:
        with LdapDirectoryClient(config) as directory:
            identity = directory.lookup("alice")
    """

    def __init__(self, config: DirectoryConfig) -> None:
        self._config = config
        self._connection: Connection | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> LdapDirectoryClient:
        return cls(DirectoryConfig.from_settings(settings))

    def __enter__(self) -> LdapDirectoryClient:
        if self._connection is not None:
            raise RuntimeError("LDAP connection already open")
        config = self._config
        tls = Tls(
            validate=ssl.CERT_REQUIRED if config.validate_certificate else ssl.CERT_NONE,
            ca_certs_file=config.ca_certs_file,
        )
        server = Server(
            config.url,
            tls=tls,
            connect_timeout=config.timeout_seconds,
            get_info=NONE,
        )
        logger.debug("Binding to %s as '%s'", config.url, config.principal)
        try:
            self._connection = Connection(
                server,
                user=config.principal,
                password=config.service_password,
                authentication=SIMPLE,
                auto_bind=config.auto_bind,
                auto_referrals=False,
                raise_exceptions=True,
                receive_timeout=config.timeout_seconds,
            )
        except LDAPException as e:
            logger.error("Could not bind to the directory at %s: %s", config.url, e)
            raise DirectoryUnavailableException("bind") from e
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Unbind and drop the connection. Errors are logged, never raised."""
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            logger.debug("Closing the LDAP connection")
            connection.unbind()
        except LDAPException:
            logger.exception("Error occurred when closing the LDAP connection")

    @traced("directory.lookup")
    def lookup(self, username: str) -> DirectoryIdentity | None:
        """Find the user whose principal name is username@domain.

        Returns the first entry when the search matches more than one.

        Raises:
            DirectoryUnavailableException: On any protocol or transport failure.
        """
        connection = self._require_connection()
        domain = self._config.domain
        search_filter = (
            f"(&(userPrincipalName={escape_filter_chars(username)}@{escape_filter_chars(domain)})"
            "(objectClass=user))"
        )
        logger.debug("Finding user with username '%s'", username)
        try:
            connection.search(
                search_base=self._config.search_base,
                search_filter=search_filter,
                search_scope=SUBTREE,
                attributes=list(USER_ATTRIBUTES),
            )
        except LDAPException as e:
            logger.warning("Exception occurred when looking up user: %s", e)
            raise DirectoryUnavailableException("lookup") from e

        entries = [
            entry
            for entry in (connection.response or [])
            if entry.get("type") == "searchResEntry"
        ]
        if not entries:
            logger.debug("No user was found")
            return None
        if len(entries) > 1:
            logger.debug("Search matched %d entries; using the first", len(entries))

        entry = entries[0]
        attributes = entry.get("attributes") or {}
        identity = DirectoryIdentity(
            distinguished_name=_attribute(attributes, "distinguishedName") or entry.get("dn", ""),
            principal_name=_attribute(attributes, "userPrincipalName"),
            display_name=_attribute(attributes, "name"),
            mail=_attribute(attributes, "mail"),
            telephone_number=_attribute(attributes, "telephoneNumber"),
        )
        logger.debug("Found user '%s'", identity.display_name)
        return identity

    @traced("directory.change_password")
    def change_password(
        self, identity: DirectoryIdentity, new_password: str
    ) -> PasswordChangeOutcome:
        """Replace unicodePwd of identity with new_password.

        Returns POLICY_VIOLATION when the directory rejects the value and
        UNAVAILABLE for any other failure; never raises for directory errors.
        """
        logger.debug("Setting password for user '%s'", identity.distinguished_name)
        try:
            connection = self._require_connection()
            connection.modify(
                identity.distinguished_name,
                {"unicodePwd": [(MODIFY_REPLACE, [encode_unicode_pwd(new_password)])]},
            )
        except LDAPOperationResult as e:
            if e.result in POLICY_RESULT_CODES:
                logger.debug("Password did not meet the requirements (%s)", e.description)
                return PasswordChangeOutcome.POLICY_VIOLATION
            logger.error("Exception occurred when setting password: %s", e)
            return PasswordChangeOutcome.UNAVAILABLE
        except (LDAPException, DirectoryUnavailableException) as e:
            logger.error("Exception occurred when setting password: %s", e)
            return PasswordChangeOutcome.UNAVAILABLE
        return PasswordChangeOutcome.SUCCESS

    def _require_connection(self) -> Connection:
        if self._connection is None:
            raise DirectoryUnavailableException("not connected")
        return self._connection
