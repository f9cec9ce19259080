"""Python client for the console API."""

from opsconsole.client.permissions import PermissionsClient


__all__ = ["PermissionsClient"]
