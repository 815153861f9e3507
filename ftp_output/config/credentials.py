"""Secure credential storage for FTP File Output.

Uses the system keyring (Windows Credential Manager, macOS Keychain,
Linux Secret Service) so FTP passwords need not be written into
settings files.
"""

import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError

from ftp_output.config.settings import OutputSettings

logger = logging.getLogger("ftp_output.credentials")


class CredentialManager:
    """Secure credential storage using system keyring."""

    SERVICE_NAME = "ftp-file-output"

    def _make_key(self, host: str, username: str) -> str:
        """
        Create a unique key for the credential.

        Args:
            host: FTP host
            username: FTP username

        Returns:
            Unique key string
        """
        return f"{host}:{username}"

    def save_password(self, host: str, username: str, password: str) -> bool:
        """
        Save FTP password securely.

        Args:
            host: FTP host
            username: FTP username
            password: Password to save

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            key = self._make_key(host, username)
            keyring.set_password(self.SERVICE_NAME, key, password)
            return True
        except KeyringError as e:
            logger.warning(f"Could not save password for {username}@{host}: {e}")
            return False

    def get_password(self, host: str, username: str) -> Optional[str]:
        """
        Retrieve saved password.

        Args:
            host: FTP host
            username: FTP username

        Returns:
            Password string or None if not found
        """
        try:
            key = self._make_key(host, username)
            return keyring.get_password(self.SERVICE_NAME, key)
        except KeyringError as e:
            logger.warning(f"Could not read password for {username}@{host}: {e}")
            return None

    def delete_password(self, host: str, username: str) -> bool:
        """
        Remove saved password.

        Args:
            host: FTP host
            username: FTP username

        Returns:
            True if deleted successfully, False otherwise
        """
        try:
            key = self._make_key(host, username)
            keyring.delete_password(self.SERVICE_NAME, key)
            return True
        except KeyringError:
            return False

    def fill_password(self, settings: OutputSettings) -> OutputSettings:
        """
        Complete settings with a keyring password when none is configured.

        Args:
            settings: Settings that may lack a password

        Returns:
            Settings with the stored password, or the input unchanged
        """
        if settings.user is None or settings.password is not None:
            return settings

        password = self.get_password(settings.host, settings.user)
        if password is None:
            return settings

        logger.debug(f"Using stored password for {settings.user}@{settings.host}")
        return settings.with_password(password)
