"""Directory identity entity: read-only snapshot of a directory account."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DirectoryIdentity:
    """Account resolved from the directory for one workflow.

    Fetched fresh on every lookup and never cached beyond the workflow that
    resolved it. mail and telephone_number are empty strings when the
    directory has no value.
    """

    distinguished_name: str
    principal_name: str
    display_name: str
    mail: str = ""
    telephone_number: str = ""

    @property
    def key(self) -> str:
        """Case-insensitive account key (distinguished names compare without case)."""
        return self.distinguished_name.casefold()

    def same_account(self, other: "DirectoryIdentity | None") -> bool:
        """Return whether other refers to the same directory account."""
        return other is not None and self.key == other.key
